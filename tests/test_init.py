import polyclick


def test_public_names_resolve() -> None:
    for name in polyclick.__all__:
        assert hasattr(polyclick, name), name


def test_version_is_set() -> None:
    assert polyclick.__version__


def test_round_trip_through_public_api() -> None:
    session = polyclick.parse_session(60, [(3, 4), (4, 4)])
    unit, rescaled = polyclick.resolve(session.signatures)
    timeline = polyclick.build(session.tempo, unit, rescaled)
    segments = polyclick.render(timeline)

    assert unit == 4
    assert len(segments) == 12
