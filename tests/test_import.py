"""Basic import tests to verify package structure."""


def test_import_lamportsim():
    """Verify main package imports."""
    import lamportsim
    assert lamportsim.__version__ == "0.1.0"


def test_import_core():
    """Verify core module structure exists."""
    from lamportsim import core
    assert hasattr(core, "__doc__")
    assert hasattr(core, "Simulation")


def test_import_analysis():
    """Verify analysis module structure exists."""
    from lamportsim import analysis
    assert hasattr(analysis, "__doc__")
    assert hasattr(analysis, "verify_run")
