from visionrelay import __version__


def test_version_exposed():
    parts = __version__.split(".")
    assert len(parts) == 3
    assert all(p.isdigit() for p in parts)
