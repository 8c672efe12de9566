"""
랭크 카드에 필요한 데이터를 수집·가공하는 서비스 모듈입니다.
XP DB에서 누적 XP와 순위를 읽어와 XPFormulas로 레벨을 계산하고,
카드 스타일 설정 파일의 색상을 적용한 RankCard를 만듭니다.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import List, Optional

import discord

from src.core.XPDataManager import XPDataManager
from src.rankcard.RankCard import RankCard
from src.rankcard.RankCardGenerator import CardCaption
from src.rankcard.XPFormulas import TieredLevelManager

logger = logging.getLogger(__name__)

# 카드 스타일 설정 파일 경로
STYLE_CONFIG_PATH = "config/rank_card.json"


@dataclass
class RankCardStyle:
    """카드 색상과 라벨 설정 (설정 파일에 없는 키는 기본값 유지)"""
    background: Optional[str] = None
    overlay: Optional[str] = None
    bar: Optional[str] = None
    track: Optional[str] = None
    username_color: Optional[str] = None
    discriminator_color: Optional[str] = None
    rank_number_color: Optional[str] = None
    rank_text_color: Optional[str] = None
    level_number_color: Optional[str] = None
    level_text_color: Optional[str] = None
    current_xp_color: Optional[str] = None
    required_xp_color: Optional[str] = None

    # 만렙 설정
    max_level: Optional[int] = None
    maxed_gradient: List[str] = field(default_factory=list)
    maxed_badge: Optional[str] = None

    rank_label: str = "RANK"
    level_label: str = "LEVEL"

    @property
    def caption(self) -> CardCaption:
        return CardCaption(rank=self.rank_label, level=self.level_label)


def load_style(path: str = STYLE_CONFIG_PATH) -> RankCardStyle:
    """카드 스타일 설정 파일을 로드합니다. 파일이 없거나 잘못되었으면 기본값을 사용합니다."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except FileNotFoundError:
        return RankCardStyle()
    except json.JSONDecodeError as e:
        logger.warning(f"카드 스타일 설정 파싱 실패 ({path}): {e}, 기본값을 사용합니다.")
        return RankCardStyle()

    if not isinstance(raw, dict):
        logger.warning(f"카드 스타일 설정은 JSON 객체여야 합니다 ({path}), 기본값을 사용합니다.")
        return RankCardStyle()

    values = {}
    for key, value in raw.items():
        if key not in RankCardStyle.__dataclass_fields__:
            logger.warning(f"알 수 없는 카드 스타일 키가 무시되었습니다: {key}")
        elif not _valid_style_value(key, value):
            logger.warning(f"카드 스타일 값의 형식이 잘못되어 무시되었습니다: {key}={value!r}")
        else:
            values[key] = value
    return RankCardStyle(**values)


def _valid_style_value(key: str, value) -> bool:
    if key == "max_level":
        return value is None or (isinstance(value, int) and not isinstance(value, bool))
    if key == "maxed_gradient":
        return isinstance(value, list) and all(isinstance(c, str) for c in value)
    if key in ("rank_label", "level_label"):
        return isinstance(value, str)
    # 나머지는 색상/URL 문자열
    return value is None or isinstance(value, str)


class RankCardService:
    """랭크 카드 데이터 수집 및 레벨 계산 서비스"""

    def __init__(self, data_manager: Optional[XPDataManager] = None, style: Optional[RankCardStyle] = None):
        self.data_manager = data_manager or XPDataManager()
        self.style = style or load_style()

    async def build_card(self, member: discord.Member) -> RankCard:
        """
        유저의 랭크 카드 설정을 만듭니다.

        1. DB에서 누적 XP와 순위 조회 (기록이 없으면 순위 0)
        2. XPFormulas로 레벨/현재 XP/필요 XP 계산
        3. 스타일 설정 적용
        """
        total_xp = await self.data_manager.get_total_xp(member.id)
        rank = await self.data_manager.get_rank(member.id) or 0
        info = TieredLevelManager.calculate_level(total_xp)

        style = self.style
        card = (
            RankCard()
            .set_avatar(member.display_avatar.url)
            .set_status(member.status)
            .set_username(member.display_name, style.username_color)
            .set_discriminator(member.discriminator, style.discriminator_color)
            .set_rank(rank, style.rank_number_color, style.rank_text_color)
            .set_level(info.level, style.level_number_color, style.level_text_color)
            .set_current_xp(info.current_xp, style.current_xp_color)
            .set_required_xp(info.required_xp, style.required_xp_color)
        )

        if style.background:
            card.set_background_color(style.background)
        if style.overlay:
            card.set_overlay_color(style.overlay)
        if style.bar:
            card.set_progressbar_color(style.bar)
        if style.track:
            card.set_progressbar_track_color(style.track)

        if style.max_level is not None and info.level >= style.max_level:
            card.set_maxed(True, style.maxed_gradient or None, style.maxed_badge)

        return card


async def setup(bot):
    pass  # 유틸리티 모듈 (Cog 없음)
