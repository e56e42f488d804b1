import pathlib
import sys
import unittest

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from app_config import AppConfig


class AppConfigFromEnvTests(unittest.TestCase):
    def test_defaults_when_environment_is_empty(self):
        config = AppConfig.from_env({})

        self.assertEqual(config, AppConfig())
        self.assertEqual(config.base_url, "https://www.swiggy.com")
        self.assertEqual(config.http_timeout, 20.0)
        self.assertEqual(config.max_pages, 300)
        self.assertEqual(config.timezone, "UTC")
        self.assertEqual(config.port, 5002)

    def test_reads_overrides(self):
        config = AppConfig.from_env(
            {
                "SWIGGY_BASE_URL": "http://localhost:9000/",
                "SWIGGY_HTTP_TIMEOUT": "7.5",
                "SWIGGY_MAX_PAGES": "12",
                "SWIGGY_TIMEZONE": "Asia/Kolkata",
                "SWIGGY_INSIGHTS_PORT": "6001",
            }
        )

        self.assertEqual(config.base_url, "http://localhost:9000")
        self.assertEqual(config.http_timeout, 7.5)
        self.assertEqual(config.max_pages, 12)
        self.assertEqual(config.timezone, "Asia/Kolkata")
        self.assertEqual(config.port, 6001)

    def test_invalid_values_fall_back_to_defaults(self):
        with self.assertLogs("app_config", level="WARNING") as captured:
            config = AppConfig.from_env(
                {
                    "SWIGGY_HTTP_TIMEOUT": "soon",
                    "SWIGGY_MAX_PAGES": "lots",
                    "SWIGGY_TIMEZONE": "Mars/Olympus",
                }
            )

        self.assertEqual(config.http_timeout, 20.0)
        self.assertEqual(config.max_pages, 300)
        self.assertEqual(config.timezone, "UTC")
        self.assertEqual(len(captured.records), 3)

    def test_non_positive_numbers_are_ignored(self):
        config = AppConfig.from_env({"SWIGGY_MAX_PAGES": "0", "SWIGGY_HTTP_TIMEOUT": "-1"})

        self.assertEqual(config.max_pages, 300)
        self.assertEqual(config.http_timeout, 20.0)


if __name__ == "__main__":
    unittest.main()
