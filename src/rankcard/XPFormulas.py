"""
랭크 카드 계산 모듈입니다.
카드에 표시되는 숫자 축약, 진행바 길이, 그라디언트 정지점과
누적 XP 기반 티어 레벨을 계산합니다.

경험치 티어 시스템:
  - 10레벨마다 티어가 증가하며, 레벨업에 필요한 XP가 50%씩 늘어남
  - 기본 XP = (레벨 * 69.5) + 35
  - 최종 XP = 기본 XP * (1 + (레벨 // 10) * 0.5)
"""

import math
from dataclasses import dataclass
from typing import List, Sequence, Tuple

# 진행바 트랙 내부 길이(px)
BAR_LENGTH = 592


def _abbreviate(value: float, suffix: str) -> str:
    text = f"{value:.1f}"
    if text.endswith(".0"):
        text = text[:-2]
    return f"{text}{suffix}"


def format_number(value: int) -> str:
    """
    숫자를 K/M 단위로 축약합니다.

    1000 미만은 그대로, 그 이상은 소수점 한 자리까지 표시하고
    소수점이 .0이면 생략합니다. (1500 → 1.5K, 2000 → 2K)
    """
    if not value:
        return "0"

    if value >= 1_000_000:
        return _abbreviate(value / 1_000_000, "M")
    if value >= 1000:
        return _abbreviate(value / 1000, "K")
    return str(value)


def calc_progress(current: int, required: int, length: int = BAR_LENGTH) -> int:
    """
    진행바 채움 길이(px)를 계산합니다.

    필요 XP가 0 이하이면 가득 찬 바로 취급하고,
    결과는 [0, length] 범위로 고정합니다.
    """
    if required <= 0:
        return length

    # 사사오입 (0.5는 올림)
    filled = math.floor(length * (current / required) + 0.5)
    return max(0, min(length, filled))


def gradient_stops(colors: Sequence[str]) -> List[Tuple[float, str]]:
    """색상 목록을 [0, 1] 구간에 균등 분배한 (위치, 색상) 쌍으로 변환합니다."""
    if not colors:
        return []
    if len(colors) == 1:
        return [(0.0, colors[0])]

    last = len(colors) - 1
    return [(i / last, color) for i, color in enumerate(colors)]


@dataclass
class LevelInfo:
    """레벨 계산 결과를 담는 데이터 클래스"""
    level: int            # 현재 레벨
    current_xp: int       # 현재 레벨에서의 누적 XP
    required_xp: int      # 다음 레벨까지 필요한 총 XP
    progress_pct: float   # 진행률 (0.0 ~ 100.0)


class TieredLevelManager:
    """티어 기반 경험치 계산기"""

    GROWTH = 69.5
    BASE = 35

    @staticmethod
    def get_tier_multiplier(level: int) -> float:
        """10레벨마다 0.5씩 증가하는 티어 배수를 반환합니다."""
        tier = level // 10
        return 1 + (tier * 0.5)

    @classmethod
    def get_next_xp(cls, level: int) -> int:
        """해당 레벨에서 다음 레벨로 올라가기 위한 XP를 반환합니다."""
        standard_xp = (level * cls.GROWTH) + cls.BASE
        return int(standard_xp * cls.get_tier_multiplier(level))

    @classmethod
    def calculate_level(cls, total_xp: int) -> LevelInfo:
        """
        누적 XP를 레벨, 잔여 XP, 진행률로 변환합니다.

        누적 XP에서 각 레벨에 필요한 XP를 순차적으로 차감하여
        현재 레벨과 진행률을 계산합니다.

        Args:
            total_xp: 누적 총 XP

        Returns:
            LevelInfo: 레벨, 현재 XP, 필요 XP, 진행률
        """
        if total_xp < 0:
            raise ValueError(f"누적 XP는 음수일 수 없습니다: {total_xp}")

        level = 0
        remaining_xp = total_xp

        # 누적 XP에서 레벨업 비용을 순차 차감
        while True:
            required = cls.get_next_xp(level)
            if remaining_xp < required:
                break
            remaining_xp -= required
            level += 1

        current_required = cls.get_next_xp(level)
        progress = (remaining_xp / current_required * 100) if current_required > 0 else 0.0

        return LevelInfo(
            level=level,
            current_xp=remaining_xp,
            required_xp=current_required,
            progress_pct=min(progress, 100.0)
        )


async def setup(bot):
    pass  # 유틸리티 모듈 (Cog 없음)
