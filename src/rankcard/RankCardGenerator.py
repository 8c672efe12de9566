"""
랭크 카드 이미지 생성 모듈입니다.
Pillow를 사용하여 RankCard 설정을 고정 레이아웃의 PNG 이미지로 그립니다.

레이아웃 (930x280px 기준)
  - 배경 + 15px 안쪽 오버레이
  - 왼쪽: 원형 아바타
  - 가운데 위: 랭크 / 레벨
  - 가운데: 상태 표시, 유저명#태그, XP 텍스트(또는 만렙 배지)
  - 아래: 캡슐형 진행바 (트랙 + 채움/그라디언트)

그리는 순서는 뒤에서 앞으로 고정되어 있으며, 모든 그리기 호출은
채움 색상과 폰트를 인자로 직접 받습니다.
"""

import io
import logging
import os
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from PIL import Image, ImageColor, ImageDraw, ImageFont

from src.rankcard.ImageFetcher import ImageFetcher
from src.rankcard.RankCard import RankCard, RankCardSnapshot, UserStatus
from src.rankcard.XPFormulas import BAR_LENGTH, calc_progress, format_number, gradient_stops

logger = logging.getLogger(__name__)

RGBA = Tuple[int, int, int, int]

# ── 오버레이 ──
OVERLAY_MARGIN = 15

# ── 상태 표시 ──
STATUS_X, STATUS_Y = 280, 160
STATUS_SIZE = 20
STATUS_COLORS = {
    UserStatus.ONLINE: "#43b581",
    UserStatus.IDLE:   "#faa61a",
    UserStatus.DND:    "#f04747",
}
STATUS_DEFAULT_COLOR = "#747f8e"   # offline, invisible

# ── 텍스트 위치 (x, 기준선 y) ──
NAME_X, NAME_Y = 310, 184
NAME_GAP = 15
RANK_X, LEVEL_X, STAT_Y = 440, 672.5, 80
STAT_GAP = 30
XP_RIGHT, XP_Y = 880, 184

# ── 진행바 ──
BAR_X, BAR_Y = 284, 197
BAR_HEIGHT = 38
BAR_CENTER_Y = 216
CAP_RADIUS = 19
BAR_END_X = BAR_X + BAR_LENGTH
GRADIENT_START_X, GRADIENT_END_X = 287, 873

# ── 만렙 배지 ──
BADGE_X, BADGE_Y = 745, 100
BADGE_SIZE = 130

# ── 아바타 ──
AVATAR_X, AVATAR_Y = 35, 35
AVATAR_SIZE = 210

# ── 폰트 ──
FONT_BOLD_PATH = os.environ.get("RANKCARD_FONT_BOLD", "assets/fonts/Manrope-Bold.ttf")
FONT_REGULAR_PATH = os.environ.get("RANKCARD_FONT_REGULAR", "assets/fonts/Manrope-Regular.ttf")


@dataclass(frozen=True)
class CardCaption:
    """랭크/레벨 라벨 문구 (렌더링 시점에 지정)"""
    rank: str = "RANK"
    level: str = "LEVEL"


# ────────────────────────────────────────────────
# 유틸
# ────────────────────────────────────────────────

def _load_font(path: str, size: int) -> ImageFont.FreeTypeFont:
    """폰트 파일을 로드합니다. 실패 시 같은 크기의 기본 폰트를 반환합니다."""
    try:
        return ImageFont.truetype(path, size)
    except (IOError, OSError) as e:
        logger.warning(f"폰트 로드 실패 ({path}): {e}, 기본 폰트를 사용합니다.")
        return ImageFont.load_default(size=size)


def _make_circle_mask(diameter: int) -> Image.Image:
    """원형 마스크를 생성합니다."""
    mask = Image.new('L', (diameter, diameter), 0)
    draw = ImageDraw.Draw(mask)
    draw.ellipse([(0, 0), (diameter - 1, diameter - 1)], fill=255)
    return mask


def status_color(status: UserStatus) -> str:
    return STATUS_COLORS.get(status, STATUS_DEFAULT_COLOR)


def _interpolate(stops: Sequence[Tuple[float, RGBA]], t: float) -> RGBA:
    """정지점 목록에서 위치 t(0~1)의 색상을 선형 보간합니다."""
    if t <= stops[0][0]:
        return stops[0][1]
    for (o1, c1), (o2, c2) in zip(stops, stops[1:]):
        if t <= o2:
            span = (t - o1) / (o2 - o1) if o2 > o1 else 1.0
            return tuple(int(round(a + (b - a) * span)) for a, b in zip(c1, c2))
    return stops[-1][1]


def make_horizontal_gradient(size: Tuple[int, int], colors: Sequence[str], origin_x: int = BAR_X) -> Image.Image:
    """
    여러 색상을 균등 분배한 가로 그라디언트 이미지를 만듭니다.

    그라디언트 축은 캔버스 기준 GRADIENT_START_X ~ GRADIENT_END_X이며,
    origin_x는 이 이미지가 붙여질 캔버스 x 좌표입니다. 축 바깥은 양 끝 색으로 채웁니다.
    """
    w, h = size
    stops = [(offset, ImageColor.getcolor(color, 'RGBA')) for offset, color in gradient_stops(colors)]
    img = Image.new('RGBA', (w, h), (0, 0, 0, 0))
    d = ImageDraw.Draw(img)
    axis = GRADIENT_END_X - GRADIENT_START_X
    for x in range(w):
        t = (origin_x + x - GRADIENT_START_X) / axis
        d.line([(x, 0), (x, h)], fill=_interpolate(stops, min(1.0, max(0.0, t))))
    return img


# ────────────────────────────────────────────────
# 메인 생성기
# ────────────────────────────────────────────────

class RankCardGenerator:
    """랭크 카드 이미지 생성기"""

    def __init__(self, fetcher: Optional[ImageFetcher] = None):
        self.fetcher = fetcher or ImageFetcher()

        self.font_name = _load_font(FONT_BOLD_PATH, 38)
        self.font_discrim = _load_font(FONT_REGULAR_PATH, 38)
        self.font_label = _load_font(FONT_BOLD_PATH, 45)
        self.font_number = _load_font(FONT_REGULAR_PATH, 45)
        self.font_xp = _load_font(FONT_REGULAR_PATH, 30)

    async def render(self, card: RankCard, text: Optional[CardCaption] = None, fetcher=None) -> io.BytesIO:
        """
        카드를 검증하고 필요한 이미지를 불러온 뒤 PNG로 그립니다.

        1. 필수 값 검증 (실패 시 MissingFieldError, 아무것도 불러오지 않음)
        2. 아바타 로드
        3. 만렙 + 배지가 있으면 배지 로드
        4. 이미지 생성
        """
        snapshot = card.freeze()
        fetcher = fetcher or self.fetcher

        avatar = await fetcher.fetch(snapshot.avatar)
        badge = None
        if snapshot.maxed and snapshot.badge:
            badge = await fetcher.fetch(snapshot.badge)

        return self.generate(snapshot, text or CardCaption(), avatar, badge)

    def generate(
        self,
        data: RankCardSnapshot,
        text: CardCaption,
        avatar: Image.Image,
        badge: Optional[Image.Image] = None,
    ) -> io.BytesIO:
        """랭크 카드 이미지를 생성하여 BytesIO로 반환합니다."""
        canvas = Image.new('RGBA', (data.width, data.height), (0, 0, 0, 0))
        draw = ImageDraw.Draw(canvas, 'RGBA')

        # ── 배경 & 오버레이 ──
        self._fill_rect(draw, 0, 0, data.width, data.height, data.background)
        self._fill_rect(
            draw,
            OVERLAY_MARGIN, OVERLAY_MARGIN,
            data.width - OVERLAY_MARGIN * 2, data.height - OVERLAY_MARGIN * 2,
            data.overlay,
        )

        # ── 상태 ──
        self._fill_rect(draw, STATUS_X, STATUS_Y, STATUS_SIZE, STATUS_SIZE, status_color(data.status))

        # ── 유저명 + 태그 ──
        self._draw_text_pair(
            draw, NAME_X, NAME_Y, NAME_GAP,
            data.username, self.font_name, data.username_color,
            data.discriminator, self.font_discrim, data.discriminator_color,
        )

        # ── 랭크 / 레벨 ──
        self._draw_text_pair(
            draw, RANK_X, STAT_Y, STAT_GAP,
            text.rank, self.font_label, data.rank_text_color,
            format_number(data.rank), self.font_number, data.rank_number_color,
        )
        self._draw_text_pair(
            draw, LEVEL_X, STAT_Y, STAT_GAP,
            text.level, self.font_label, data.level_text_color,
            str(data.level), self.font_number, data.level_number_color,
        )

        # ── 진행바 ──
        self._draw_capsule(draw, BAR_LENGTH, data.track_color)
        if not data.maxed:
            progress = calc_progress(data.current_xp, data.required_xp)
            self._draw_capsule(draw, progress, data.bar_color)
        elif data.gradient:
            self._draw_gradient_bar(canvas, data.gradient)
        else:
            self._draw_capsule(draw, BAR_LENGTH, data.bar_color)

        # ── XP / 만렙 배지 ──
        if data.maxed:
            if badge is not None:
                badge_img = badge.convert('RGBA').resize((BADGE_SIZE, BADGE_SIZE), Image.LANCZOS)
                canvas.alpha_composite(badge_img, dest=(BADGE_X, BADGE_Y))
        else:
            self._draw_xp_text(draw, data)

        # ── 아바타 (원형) ──
        self._draw_avatar(canvas, avatar)

        # ── PNG로 저장 ──
        buffer = io.BytesIO()
        canvas.save(buffer, format="PNG")
        buffer.seek(0)
        return buffer

    # ────────────────────────────────────────────────
    # 도형
    # ────────────────────────────────────────────────

    @staticmethod
    def _fill_rect(draw: ImageDraw.ImageDraw, x: float, y: float, width: float, height: float, color: str):
        if width <= 0 or height <= 0:
            return
        draw.rectangle([(x, y), (x + width - 1, y + height - 1)], fill=color)

    @staticmethod
    def _draw_cap(draw: ImageDraw.ImageDraw, cx: float, left: bool, color: str):
        """진행바 끝의 반원. 왼쪽 캡은 왼쪽 반원, 오른쪽 캡은 오른쪽 반원입니다."""
        box = [(cx - CAP_RADIUS, BAR_CENTER_Y - CAP_RADIUS), (cx + CAP_RADIUS, BAR_CENTER_Y + CAP_RADIUS)]
        if left:
            draw.pieslice(box, 90, 270, fill=color)
        else:
            draw.pieslice(box, -90, 90, fill=color)

    def _draw_capsule(self, draw: ImageDraw.ImageDraw, length: int, color: str):
        """트랙 왼쪽 끝에서 length만큼의 캡슐(왼쪽 캡 + 사각형 + 오른쪽 캡)을 그립니다."""
        self._draw_cap(draw, BAR_X, True, color)
        self._draw_cap(draw, BAR_X + length, False, color)
        self._fill_rect(draw, BAR_X, BAR_Y, length, BAR_HEIGHT, color)

    def _draw_gradient_bar(self, canvas: Image.Image, colors: Sequence[str]):
        """만렙 그라디언트 바. 양 끝 캡은 첫/마지막 색상의 단색입니다."""
        gradient = make_horizontal_gradient((BAR_LENGTH, BAR_HEIGHT), colors, origin_x=BAR_X)
        canvas.alpha_composite(gradient, dest=(BAR_X, BAR_Y))
        draw = ImageDraw.Draw(canvas, 'RGBA')
        self._draw_cap(draw, BAR_X, True, colors[0])
        self._draw_cap(draw, BAR_END_X, False, colors[-1])

    # ────────────────────────────────────────────────
    # 텍스트
    # ────────────────────────────────────────────────

    @staticmethod
    def _draw_text_pair(
        draw: ImageDraw.ImageDraw,
        x: float,
        y: float,
        gap: float,
        first: str,
        first_font: ImageFont.FreeTypeFont,
        first_color: str,
        second: str,
        second_font: ImageFont.FreeTypeFont,
        second_color: str,
    ):
        """두 텍스트를 이어 그립니다. 두 번째 x는 첫 번째의 실제 폭을 측정해서 정합니다."""
        draw.text((x, y), first, fill=first_color, font=first_font, anchor="ls")
        first_w = draw.textlength(first, font=first_font)
        draw.text((x + first_w + gap, y), second, fill=second_color, font=second_font, anchor="ls")

    def _draw_xp_text(self, draw: ImageDraw.ImageDraw, data: RankCardSnapshot):
        """오른쪽 정렬 '현재 / 필요' XP. 두 색상의 경계는 뒷부분 폭을 측정해서 정합니다."""
        current = format_number(data.current_xp)
        required = format_number(data.required_xp)

        draw.text((XP_RIGHT, XP_Y), f"/ {required}", fill=data.required_xp_color, font=self.font_xp, anchor="rs")
        tail_w = draw.textlength(f" / {required}", font=self.font_xp)
        draw.text((XP_RIGHT - tail_w, XP_Y), current, fill=data.current_xp_color, font=self.font_xp, anchor="rs")

    # ────────────────────────────────────────────────
    # 아바타
    # ────────────────────────────────────────────────

    @staticmethod
    def _draw_avatar(canvas: Image.Image, avatar: Image.Image):
        """아바타를 원형으로 잘라 고정 위치에 붙입니다. 마스크는 이 붙이기에만 적용됩니다."""
        avatar_img = avatar.convert('RGBA').resize((AVATAR_SIZE, AVATAR_SIZE), Image.LANCZOS)
        mask = _make_circle_mask(AVATAR_SIZE)

        clipped = Image.new('RGBA', (AVATAR_SIZE, AVATAR_SIZE), (0, 0, 0, 0))
        clipped.paste(avatar_img, (0, 0), mask)
        canvas.alpha_composite(clipped, dest=(AVATAR_X, AVATAR_Y))


async def setup(bot):
    pass  # 유틸리티 모듈 (Cog 없음)
