"""
Tests for the scripts/run_tests.py pytest wrapper.
"""

import importlib.util
import sys
import unittest
from pathlib import Path
from unittest.mock import MagicMock, patch

_SCRIPT = Path(__file__).resolve().parent.parent / "scripts" / "run_tests.py"


def _load_script():
    spec = importlib.util.spec_from_file_location("run_tests_script", _SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class TestRunTestsScript(unittest.TestCase):

    def setUp(self):
        self.script = _load_script()

    def test_short_module_name_resolves_to_test_file(self):
        self.assertEqual(self.script.resolve_target("session"), "tests/test_session.py")
        self.assertEqual(self.script.resolve_target("test_cli"), "tests/test_cli.py")
        self.assertEqual(self.script.resolve_target("test_cli.py"), "tests/test_cli.py")
        self.assertEqual(self.script.resolve_target(None), "tests/")

    def test_build_command_uses_current_interpreter(self):
        cmd = self.script.build_command("bencode", verbose=False)

        self.assertEqual(cmd, [sys.executable, "-m", "pytest", "tests/test_bencode.py", "--tb=short"])

    def test_main_returns_pytest_status(self):
        with patch.object(self.script.subprocess, "run", return_value=MagicMock(returncode=1)) as run:
            status = self.script.main(["config"])

        self.assertEqual(status, 1)
        self.assertIn("tests/test_config.py", run.call_args.args[0])
        self.assertEqual(run.call_args.kwargs["cwd"], self.script.PROJECT_ROOT)


if __name__ == "__main__":
    unittest.main()
