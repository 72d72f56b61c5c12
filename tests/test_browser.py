import unittest

from hwbot.platform.browser import BrowserSettings


class BrowserSettingsTests(unittest.TestCase):
    def test_from_profile(self) -> None:
        settings = BrowserSettings.from_profile(
            {
                "game_url": "https://www.hero-wars.com/",
                "browser": {
                    "channel": "chrome",
                    "headless": True,
                    "user_data_dir": None,
                    "viewport": {"width": 1600, "height": 900},
                },
            }
        )
        self.assertEqual(settings.channel, "chrome")
        self.assertTrue(settings.headless)
        self.assertIsNone(settings.user_data_dir)
        self.assertEqual(settings.viewport, (1600, 900))
        self.assertIsNone(settings.cdp_url)

    def test_launch_kwargs(self) -> None:
        settings = BrowserSettings()
        self.assertEqual(settings.launch_kwargs("chromium"), {"headless": False})
        self.assertEqual(settings.launch_kwargs("msedge"), {"headless": False, "channel": "msedge"})


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
