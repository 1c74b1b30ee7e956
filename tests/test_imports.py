import importlib

import pytest

import eigsystems

class TestPackage:

    def test_version(self):
        assert isinstance(eigsystems.__version__, str)

    @pytest.mark.parametrize("module", [
        "eigsystems.algebra",
        "eigsystems.algebra.eigen",
        "eigsystems.systems",
        "eigsystems.io",
        "eigsystems.common",
    ])
    def test_submodules_import(self, module):
        assert importlib.import_module(module) is not None

    def test_lazy_exports(self):
        from eigsystems.systems.eigen_system import EigenSystem
        from eigsystems.io.exodus import ExodusFile
        assert eigsystems.EigenSystem is EigenSystem
        assert eigsystems.ExodusFile is ExodusFile

    def test_unknown_attribute(self):
        with pytest.raises(AttributeError):
            eigsystems.does_not_exist
