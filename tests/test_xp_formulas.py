import sys
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from src.rankcard.XPFormulas import (
    BAR_LENGTH,
    TieredLevelManager,
    calc_progress,
    format_number,
    gradient_stops,
)


class FormatNumberTests(unittest.TestCase):
    def test_plain_values(self):
        self.assertEqual(format_number(0), "0")
        self.assertEqual(format_number(7), "7")
        self.assertEqual(format_number(999), "999")

    def test_none_is_zero(self):
        self.assertEqual(format_number(None), "0")

    def test_kilo(self):
        self.assertEqual(format_number(1000), "1K")
        self.assertEqual(format_number(1500), "1.5K")
        self.assertEqual(format_number(2000), "2K")
        self.assertEqual(format_number(12345), "12.3K")

    def test_mega(self):
        self.assertEqual(format_number(1_000_000), "1M")
        self.assertEqual(format_number(1_500_000), "1.5M")
        self.assertEqual(format_number(25_000_000), "25M")


class ProgressTests(unittest.TestCase):
    def test_ratio(self):
        self.assertEqual(calc_progress(0, 100), 0)
        self.assertEqual(calc_progress(100, 100), BAR_LENGTH)
        self.assertEqual(calc_progress(50, 100), 296)
        self.assertEqual(calc_progress(250, 1000), 148)

    def test_half_rounds_up(self):
        # 592 * 1/16 = 37.0, 592 * 1/32 = 18.5
        self.assertEqual(calc_progress(1, 16), 37)
        self.assertEqual(calc_progress(1, 32), 19)

    def test_zero_required_is_full(self):
        self.assertEqual(calc_progress(0, 0), BAR_LENGTH)
        self.assertEqual(calc_progress(10, 0), BAR_LENGTH)

    def test_overflow_is_clamped(self):
        self.assertEqual(calc_progress(300, 100), BAR_LENGTH)
        self.assertEqual(calc_progress(-5, 100), 0)

    def test_custom_length(self):
        self.assertEqual(calc_progress(1, 2, length=100), 50)


class GradientStopTests(unittest.TestCase):
    def test_even_offsets(self):
        stops = gradient_stops(["#111", "#222", "#333"])
        self.assertEqual(stops, [(0.0, "#111"), (0.5, "#222"), (1.0, "#333")])

    def test_two_colors(self):
        self.assertEqual(gradient_stops(["#000", "#fff"]), [(0.0, "#000"), (1.0, "#fff")])

    def test_single_and_empty(self):
        self.assertEqual(gradient_stops(["#abc"]), [(0.0, "#abc")])
        self.assertEqual(gradient_stops([]), [])

    def test_input_not_mutated(self):
        colors = ["#111", "#222"]
        gradient_stops(colors)
        self.assertEqual(colors, ["#111", "#222"])


class TieredLevelTests(unittest.TestCase):
    def test_tier_multiplier(self):
        self.assertEqual(TieredLevelManager.get_tier_multiplier(0), 1.0)
        self.assertEqual(TieredLevelManager.get_tier_multiplier(9), 1.0)
        self.assertEqual(TieredLevelManager.get_tier_multiplier(10), 1.5)
        self.assertEqual(TieredLevelManager.get_tier_multiplier(25), 2.0)

    def test_zero_xp(self):
        info = TieredLevelManager.calculate_level(0)
        self.assertEqual(info.level, 0)
        self.assertEqual(info.current_xp, 0)
        self.assertEqual(info.required_xp, 35)
        self.assertEqual(info.progress_pct, 0.0)

    def test_carry_over(self):
        # 레벨 0 → 1 비용 35, 레벨 1 → 2 비용 int(104.5) = 104
        info = TieredLevelManager.calculate_level(100)
        self.assertEqual(info.level, 1)
        self.assertEqual(info.current_xp, 65)
        self.assertEqual(info.required_xp, 104)

    def test_negative_rejected(self):
        with self.assertRaises(ValueError):
            TieredLevelManager.calculate_level(-1)


if __name__ == "__main__":
    unittest.main()
