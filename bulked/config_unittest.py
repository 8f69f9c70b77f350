import os
import unittest
from unittest.mock import patch

from bulked import config


@patch("bulked.config.dotenv.find_dotenv", return_value="")
@patch("bulked.config.dotenv.load_dotenv")
class TestLoadSettings(unittest.TestCase):
    def test_defaults(self, load_dotenv, find_dotenv):
        with patch.dict(os.environ, {}, clear=True):
            settings = config.load_settings()
        self.assertEqual(settings, config.Settings(context_lines=20, no_ignore=False, hidden=False))
        load_dotenv.assert_called_once()

    def test_environment_overrides(self, load_dotenv, find_dotenv):
        env = {"BULKED_CONTEXT": "3", "BULKED_NO_IGNORE": "yes", "BULKED_HIDDEN": "1"}
        with patch.dict(os.environ, env, clear=True):
            settings = config.load_settings()
        self.assertEqual(settings, config.Settings(context_lines=3, no_ignore=True, hidden=True))

    @patch("bulked.config.log_utils.warning")
    def test_invalid_values_fall_back_with_warning(self, warning, load_dotenv, find_dotenv):
        env = {"BULKED_CONTEXT": "-2", "BULKED_HIDDEN": "maybe"}
        with patch.dict(os.environ, env, clear=True):
            settings = config.load_settings()
        self.assertEqual(settings.context_lines, config.DEFAULT_CONTEXT_LINES)
        self.assertFalse(settings.hidden)
        self.assertEqual(warning.call_count, 2)


if __name__ == "__main__":
    unittest.main()
