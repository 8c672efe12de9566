import io
import sys
import unittest
from pathlib import Path

import aiohttp
from PIL import Image

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from src.rankcard.RankCard import MissingFieldError, RankCard, UserStatus
from src.rankcard.RankCardGenerator import (
    BAR_CENTER_Y,
    CardCaption,
    RankCardGenerator,
    make_horizontal_gradient,
    status_color,
)

AVATAR_URL = "https://cdn.example.com/avatar.png"
BADGE_URL = "https://cdn.example.com/badge.png"

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"

WHITE = (255, 255, 255, 255)
TRACK = (0x48, 0x4B, 0x4E, 255)
RED = (255, 0, 0, 255)
GREEN = (0, 255, 0, 255)
BLUE = (0, 0, 255, 255)


class FakeFetcher:
    """URL별 이미지를 돌려주는 테스트용 fetcher"""

    def __init__(self, images=None, error=None):
        self.images = images or {}
        self.error = error
        self.calls = []

    async def fetch(self, url):
        self.calls.append(url)
        if self.error is not None:
            raise self.error
        return self.images.get(url, Image.new("RGBA", (64, 64), RED))


class RecordingDraw:
    """글자당 10px로 폭을 계산하고 text 호출을 기록합니다."""

    def __init__(self):
        self.calls = []

    def textlength(self, text, font=None):
        return len(text) * 10

    def text(self, xy, text, fill=None, font=None, anchor=None):
        self.calls.append((xy, text, fill, anchor))


def scenario_card() -> RankCard:
    return (
        RankCard()
        .set_avatar(AVATAR_URL)
        .set_rank(5)
        .set_level(10)
        .set_current_xp(250)
        .set_required_xp(1000)
        .set_username("AVeryLongUsername")
        .set_discriminator("0001")
    )


def decode(buffer: io.BytesIO) -> Image.Image:
    return Image.open(io.BytesIO(buffer.getvalue())).convert("RGBA")


class RenderTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.fetcher = FakeFetcher()
        self.generator = RankCardGenerator(fetcher=self.fetcher)

    async def test_end_to_end_png(self):
        buffer = await self.generator.render(scenario_card(), CardCaption("RANK", "LEVEL"))
        data = buffer.getvalue()
        self.assertTrue(data.startswith(PNG_SIGNATURE))
        self.assertEqual(buffer.tell(), 0)

        image = decode(buffer)
        self.assertEqual(image.size, (930, 280))
        self.assertEqual(self.fetcher.calls, [AVATAR_URL])

    async def test_layers(self):
        image = decode(await self.generator.render(scenario_card()))
        # 배경, 오버레이, 상태 표시
        self.assertEqual(image.getpixel((5, 5)), (0x23, 0x27, 0x2A, 255))
        self.assertEqual(image.getpixel((20, 20)), (0x33, 0x36, 0x40, 255))
        self.assertEqual(image.getpixel((290, 170)), (0x43, 0xB5, 0x81, 255))
        # 아바타는 원 안쪽만
        self.assertEqual(image.getpixel((140, 140)), RED)
        self.assertEqual(image.getpixel((40, 40)), (0x33, 0x36, 0x40, 255))

    async def test_progress_fill_width(self):
        # 250 / 1000 → 148px, 오른쪽 캡 중심 x = 284 + 148 = 432
        image = decode(await self.generator.render(scenario_card()))
        self.assertEqual(image.getpixel((300, BAR_CENTER_Y)), WHITE)
        self.assertEqual(image.getpixel((270, BAR_CENTER_Y)), WHITE)
        self.assertEqual(image.getpixel((445, BAR_CENTER_Y)), WHITE)
        self.assertEqual(image.getpixel((470, BAR_CENTER_Y)), TRACK)
        self.assertEqual(image.getpixel((890, BAR_CENTER_Y)), TRACK)

    async def test_custom_size(self):
        card = scenario_card().set_size(1000, 300)
        image = decode(await self.generator.render(card))
        self.assertEqual(image.size, (1000, 300))

    async def test_maxed_gradient(self):
        card = scenario_card().set_maxed(True, ["#ff0000", "#00ff00", "#0000ff"])
        image = decode(await self.generator.render(card))
        self.assertEqual(image.getpixel((270, BAR_CENTER_Y)), RED)
        self.assertEqual(image.getpixel((580, BAR_CENTER_Y)), GREEN)
        self.assertEqual(image.getpixel((890, BAR_CENTER_Y)), BLUE)

    async def test_maxed_single_color_gradient(self):
        card = scenario_card().set_maxed(True, ["#ff00ff"])
        image = decode(await self.generator.render(card))
        for x in (270, 500, 890):
            self.assertEqual(image.getpixel((x, BAR_CENTER_Y)), (255, 0, 255, 255))

    async def test_maxed_without_gradient_is_full_bar(self):
        card = scenario_card().set_progressbar_color("#0000ff").set_maxed(True)
        image = decode(await self.generator.render(card))
        for x in (270, 500, 890):
            self.assertEqual(image.getpixel((x, BAR_CENTER_Y)), BLUE)

    async def test_badge_only_fetched_when_maxed(self):
        badge = Image.new("RGBA", (32, 32), GREEN)
        self.fetcher.images[BADGE_URL] = badge

        card = scenario_card().set_maxed(False, badge=BADGE_URL)
        await self.generator.render(card)
        self.assertEqual(self.fetcher.calls, [AVATAR_URL])

        self.fetcher.calls.clear()
        card.set_maxed(True)
        image = decode(await self.generator.render(card))
        self.assertEqual(self.fetcher.calls, [AVATAR_URL, BADGE_URL])
        self.assertEqual(image.getpixel((810, 150)), GREEN)

    async def test_validation_runs_before_fetch(self):
        card = RankCard().set_avatar("not a url").set_rank(1)
        with self.assertRaises(MissingFieldError) as cm:
            await self.generator.render(card)
        self.assertEqual(cm.exception.field, "avatar")
        self.assertEqual(self.fetcher.calls, [])

    async def test_fetch_failure_propagates(self):
        generator = RankCardGenerator(fetcher=FakeFetcher(error=aiohttp.ClientError("boom")))
        with self.assertRaises(aiohttp.ClientError):
            await generator.render(scenario_card())

    async def test_fetcher_argument_overrides(self):
        other = FakeFetcher()
        await self.generator.render(scenario_card(), fetcher=other)
        self.assertEqual(other.calls, [AVATAR_URL])
        self.assertEqual(self.fetcher.calls, [])


class TextPlacementTests(unittest.TestCase):
    def setUp(self):
        self.generator = RankCardGenerator(fetcher=FakeFetcher())

    def test_pair_offset_uses_measured_width(self):
        draw = RecordingDraw()
        RankCardGenerator._draw_text_pair(
            draw, 310, 184, 15,
            "kaiser", None, "#ffffff",
            "#0001", None, "#ffffff66",
        )
        (first_xy, first, _, anchor), (second_xy, second, color, _) = draw.calls
        self.assertEqual(first_xy, (310, 184))
        self.assertEqual(anchor, "ls")
        self.assertEqual(second_xy, (310 + 60 + 15, 184))
        self.assertEqual(second, "#0001")
        self.assertEqual(color, "#ffffff66")

    def test_xp_text_right_aligned(self):
        draw = RecordingDraw()
        snapshot = scenario_card().set_required_xp(1500, "#aaaaaa").freeze()
        self.generator._draw_xp_text(draw, snapshot)
        (tail_xy, tail, tail_color, anchor), (head_xy, head, head_color, _) = draw.calls
        self.assertEqual((tail_xy, tail, tail_color, anchor), ((880, 184), "/ 1.5K", "#aaaaaa", "rs"))
        # " / 1.5K" = 7글자 → 70px
        self.assertEqual((head_xy, head, head_color), ((810, 184), "250", "#ffffff"))

    def test_rank_abbreviated_level_raw(self):
        pairs = []

        def record_pair(draw, x, y, gap, first, first_font, first_color, second, second_font, second_color):
            pairs.append((first, second))

        self.generator._draw_text_pair = record_pair
        snapshot = scenario_card().set_rank(1500).set_level(1500).freeze()
        self.generator.generate(snapshot, CardCaption(), Image.new("RGBA", (64, 64), RED))

        self.assertEqual(pairs[1], ("RANK", "1.5K"))
        self.assertEqual(pairs[2], ("LEVEL", "1500"))


class HelperTests(unittest.TestCase):
    def test_status_colors(self):
        self.assertEqual(status_color(UserStatus.ONLINE), "#43b581")
        self.assertEqual(status_color(UserStatus.IDLE), "#faa61a")
        self.assertEqual(status_color(UserStatus.DND), "#f04747")
        self.assertEqual(status_color(UserStatus.OFFLINE), "#747f8e")
        self.assertEqual(status_color(UserStatus.INVISIBLE), "#747f8e")

    def test_gradient_image(self):
        img = make_horizontal_gradient((592, 38), ["#000000", "#ffffff"])
        self.assertEqual(img.size, (592, 38))
        self.assertEqual(img.getpixel((0, 10)), (0, 0, 0, 255))
        self.assertEqual(img.getpixel((591, 10)), (255, 255, 255, 255))
        left, mid, right = (img.getpixel((x, 5))[0] for x in (50, 296, 550))
        self.assertLess(left, mid)
        self.assertLess(mid, right)


if __name__ == "__main__":
    unittest.main()
