"""Tests for folder_reconciler.__main__ module."""

import sys
from unittest.mock import patch

import pytest

from tests.conftest import list_files, write_tree


class TestMainModule:
    """Tests for __main__.py entry point."""

    def test_main_module_runs(self, temp_dir):
        source = write_tree(temp_dir / "src", {"a.txt": "a"})
        destination = temp_dir / "dst"

        with patch.object(sys, "argv", ["prog", "sync", str(source), str(destination)]):
            from folder_reconciler.__main__ import main
            with pytest.raises(SystemExit) as exc_info:
                main()

        assert exc_info.value.code == 0
        assert list_files(destination) == {"a.txt": "a"}

    def test_main_module_importable(self):
        """Test that __main__ can be imported."""
        import folder_reconciler.__main__ as main_module
        assert hasattr(main_module, "main")
