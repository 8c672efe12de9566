"""
랭크 카드 렌더링 설정 모듈입니다.
카드에 그릴 값과 색상을 체이닝 setter로 누적한 뒤,
freeze()로 검증된 불변 스냅샷을 만들어 생성기에 넘깁니다.

색상은 "#rrggbb" / "#rrggbbaa" 문자열 그대로 보관하며 여기서 검사하지 않습니다.
"""

import enum
import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union
from urllib.parse import urlsplit

logger = logging.getLogger(__name__)

# ── 캔버스 기본값 ──
DEFAULT_WIDTH = 930
DEFAULT_HEIGHT = 280

# 유저명 최대 표시 글자 수
USERNAME_MAX_LENGTH = 11
ELLIPSIS = "…"

_SCHEME_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*$")


class UserStatus(enum.Enum):
    """디스코드 접속 상태"""
    ONLINE = "online"
    IDLE = "idle"
    DND = "dnd"
    OFFLINE = "offline"
    INVISIBLE = "invisible"


class MissingFieldError(ValueError):
    """렌더링에 필요한 값이 설정되지 않았을 때 발생합니다."""

    def __init__(self, field_name: str, message: str):
        super().__init__(message)
        self.field = field_name


def is_url(value: str) -> bool:
    """문자열이 문법적으로 올바른 URL인지 확인합니다. (접속 여부는 확인하지 않음)"""
    if not isinstance(value, str) or not value:
        return False
    try:
        parts = urlsplit(value)
    except ValueError:
        return False
    if not parts.scheme or not _SCHEME_PATTERN.match(parts.scheme):
        return False
    return bool(parts.netloc or parts.path)


# ────────────────────────────────────────────────
# 데이터 레코드
# ────────────────────────────────────────────────

@dataclass
class ProgressBar:
    track: str = "#484b4e"
    bar: str = "#ffffff"
    maxed: Optional[List[str]] = None   # 만렙 그라디언트 색상 (왼쪽 → 오른쪽)


@dataclass
class Stat:
    """라벨 + 숫자로 그려지는 항목 (랭크, 레벨)"""
    value: Optional[int] = None
    number_color: str = "#f3f3f3"
    text_color: str = "#ffffff"


@dataclass
class Field:
    value: Optional[Union[int, str]] = None
    color: str = "#ffffff"


@dataclass(frozen=True)
class RankCardSnapshot:
    """검증을 통과한 렌더링 입력값 (불변)"""
    width: int
    height: int
    background: str
    overlay: str
    avatar: str
    badge: Optional[str]
    status: UserStatus
    maxed: bool

    track_color: str
    bar_color: str
    gradient: Tuple[str, ...]

    rank: int
    rank_number_color: str
    rank_text_color: str
    level: int
    level_number_color: str
    level_text_color: str

    current_xp: int
    current_xp_color: str
    required_xp: int
    required_xp_color: str

    username: str
    username_color: str
    discriminator: str
    discriminator_color: str


# ────────────────────────────────────────────────
# 빌더
# ────────────────────────────────────────────────

class RankCard:
    """랭크 카드 설정 빌더. 모든 setter는 self를 반환합니다."""

    def __init__(self):
        self.width = DEFAULT_WIDTH
        self.height = DEFAULT_HEIGHT
        self.background = "#23272A"
        self.overlay = "#333640"
        self.avatar: Optional[str] = None
        self.badge: Optional[str] = None
        self.status = UserStatus.ONLINE
        self.maxed = False
        self.progress_bar = ProgressBar()
        self.rank = Stat()
        self.level = Stat()
        self.current_xp = Field()
        self.required_xp = Field()
        self.username = Field()
        self.discrim = Field(color="#ffffff66")

        # 거부된 URL 기록 (setter는 체이닝을 위해 예외를 던지지 않음)
        self.rejected_urls: List[str] = []

    def _reject_url(self, kind: str, url: str):
        logger.warning(f"잘못된 {kind} URL이 무시되었습니다: {url!r}")
        self.rejected_urls.append(url)

    # ── 캔버스 / 배경 ──

    def set_size(self, width: int, height: int) -> "RankCard":
        self.width = width
        self.height = height
        return self

    def set_background_color(self, color: str) -> "RankCard":
        self.background = color
        return self

    def set_overlay_color(self, color: str) -> "RankCard":
        self.overlay = color
        return self

    # ── 이미지 ──

    def try_set_avatar(self, url: str) -> bool:
        """아바타 URL을 설정하고 수락 여부를 반환합니다."""
        if not is_url(url):
            self._reject_url("아바타", url)
            return False
        self.avatar = url
        return True

    def set_avatar(self, url: str) -> "RankCard":
        self.try_set_avatar(url)
        return self

    def try_set_badge(self, url: str) -> bool:
        """만렙 배지 URL을 설정하고 수락 여부를 반환합니다."""
        if not is_url(url):
            self._reject_url("배지", url)
            return False
        self.badge = url
        return True

    # ── 상태 ──

    def set_status(self, status: Union[UserStatus, str]) -> "RankCard":
        """
        접속 상태를 설정합니다.
        UserStatus 외에 "online" 같은 문자열이나 discord.Status도 받습니다.
        알 수 없는 값은 경고를 남기고 offline(회색)으로 취급합니다.
        """
        if isinstance(status, UserStatus):
            self.status = status
            return self

        try:
            self.status = UserStatus(str(status))
        except ValueError:
            logger.warning(f"알 수 없는 상태가 offline으로 처리되었습니다: {status!r}")
            self.status = UserStatus.OFFLINE
        return self

    # ── 진행바 ──

    def set_progressbar_color(self, color: str) -> "RankCard":
        self.progress_bar.bar = color
        return self

    def set_progressbar_track_color(self, color: str) -> "RankCard":
        self.progress_bar.track = color
        return self

    def set_maxed(self, maxed: bool, gradient: Optional[List[str]] = None, badge: Optional[str] = None) -> "RankCard":
        """
        만렙 상태를 설정합니다.

        Args:
            maxed: 만렙 여부
            gradient: 진행바 그라디언트 색상 목록 (주어질 때만 덮어씀)
            badge: XP 텍스트 자리에 그릴 배지 이미지 URL (올바른 URL일 때만 설정)
        """
        if gradient is not None:
            self.progress_bar.maxed = list(gradient)
        if badge:
            self.try_set_badge(badge)

        self.maxed = maxed
        return self

    # ── 수치 ──

    def set_rank(self, rank: int, number_color: Optional[str] = None, text_color: Optional[str] = None) -> "RankCard":
        if number_color:
            self.rank.number_color = number_color
        if text_color:
            self.rank.text_color = text_color

        self.rank.value = rank
        return self

    def set_level(self, level: int, number_color: Optional[str] = None, text_color: Optional[str] = None) -> "RankCard":
        if number_color:
            self.level.number_color = number_color
        if text_color:
            self.level.text_color = text_color

        self.level.value = level
        return self

    def set_current_xp(self, xp: int, color: Optional[str] = None) -> "RankCard":
        if color:
            self.current_xp.color = color

        self.current_xp.value = xp
        return self

    def set_required_xp(self, xp: int, color: Optional[str] = None) -> "RankCard":
        if color:
            self.required_xp.color = color

        self.required_xp.value = xp
        return self

    # ── 텍스트 ──

    def set_username(self, name: str, color: Optional[str] = None) -> "RankCard":
        """유저명을 설정합니다. 11자를 넘으면 잘라서 말줄임표를 붙입니다."""
        if color:
            self.username.color = color

        if len(name) > USERNAME_MAX_LENGTH:
            name = name[:USERNAME_MAX_LENGTH].rstrip() + ELLIPSIS
        self.username.value = name
        return self

    def set_discriminator(self, discriminator: str, color: Optional[str] = None) -> "RankCard":
        if color:
            self.discrim.color = color

        self.discrim.value = f"#{discriminator}"
        return self

    # ── 검증 ──

    def validate(self):
        """렌더링 전에 필수 값을 순서대로 확인합니다. 첫 번째 누락 항목에서 예외가 발생합니다."""
        if not self.avatar:
            raise MissingFieldError("avatar", "유저 아바타가 설정되지 않았습니다.")
        if self.rank.value is None:
            raise MissingFieldError("rank", "유저 랭크가 설정되지 않았습니다.")
        if self.level.value is None:
            raise MissingFieldError("level", "유저 레벨이 설정되지 않았습니다.")
        if self.current_xp.value is None:
            raise MissingFieldError("current_xp", "유저 현재 XP가 설정되지 않았습니다.")
        if self.required_xp.value is None:
            raise MissingFieldError("required_xp", "필요 XP가 설정되지 않았습니다.")
        if not self.username.value:
            raise MissingFieldError("username", "유저명이 설정되지 않았습니다.")
        if not self.discrim.value:
            raise MissingFieldError("discriminator", "유저 태그가 설정되지 않았습니다.")

    def freeze(self) -> RankCardSnapshot:
        """검증 후 현재 설정의 불변 스냅샷을 반환합니다."""
        self.validate()

        bar = self.progress_bar
        return RankCardSnapshot(
            width=self.width,
            height=self.height,
            background=self.background,
            overlay=self.overlay,
            avatar=self.avatar,
            badge=self.badge,
            status=self.status,
            maxed=self.maxed,
            track_color=bar.track,
            bar_color=bar.bar,
            gradient=tuple(bar.maxed or ()),
            rank=self.rank.value,
            rank_number_color=self.rank.number_color,
            rank_text_color=self.rank.text_color,
            level=self.level.value,
            level_number_color=self.level.number_color,
            level_text_color=self.level.text_color,
            current_xp=self.current_xp.value,
            current_xp_color=self.current_xp.color,
            required_xp=self.required_xp.value,
            required_xp_color=self.required_xp.color,
            username=self.username.value,
            username_color=self.username.color,
            discriminator=self.discrim.value,
            discriminator_color=self.discrim.color,
        )


async def setup(bot):
    pass  # 유틸리티 모듈 (Cog 없음)
