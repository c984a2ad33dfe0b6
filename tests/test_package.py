"""
Tests for core/package.py
"""

import pytest

from conftest import EMPTY_PACKAGE, LEGACY_PACKAGE, load_contents
from dessist.core.exceptions import EmptyExecutableSetError
from dessist.core.package import require_executables


class TestSelection:
    def test_wrapped_executables_are_selected(self, nightly_contents):
        assert [e.name for e in nightly_contents.executables] == ["Truncate Staging", "Load"]

    def test_direct_executables_are_selected(self):
        contents = load_contents(LEGACY_PACKAGE)
        assert [e.name for e in contents.executables] == ["Step One", "Step Two"]

    def test_variables_from_either_layout(self, nightly_contents):
        assert [v.name for v in nightly_contents.variables] == ["RowCount", "TableName"]
        assert [v.name for v in load_contents(LEGACY_PACKAGE).variables] == ["BatchId"]

    def test_connections(self, nightly_contents):
        assert [c.name for c in nightly_contents.connections] == ["Warehouse"]

    def test_package_name_defaults_to_root_name(self, nightly_contents):
        assert nightly_contents.package_name == "Nightly"
        assert load_contents(LEGACY_PACKAGE, "Override").package_name == "Override"


class TestEmptyPackage:
    def test_empty_is_flagged_not_raised(self):
        contents = load_contents(EMPTY_PACKAGE)
        assert contents.is_empty
        assert len(contents.variables) == 1

    def test_require_executables_raises(self):
        with pytest.raises(EmptyExecutableSetError, match="Empty"):
            require_executables(load_contents(EMPTY_PACKAGE))
