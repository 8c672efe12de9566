"""
랭크 카드 디스코드 명령어 모듈입니다.
*rank, *랭크 (접두사), /rank (슬래시) 명령어를 제공하고,
채팅 메시지마다 XP를 적립합니다.
"""

import discord
from discord import app_commands
from discord.ext import commands
import aiohttp
import logging
import traceback
import time

from src.core.XPDataManager import XPDataManager
from src.rankcard.ImageFetcher import ImageFetcher
from src.rankcard.RankCard import MissingFieldError
from src.rankcard.RankCardService import RankCardService
from src.rankcard.RankCardGenerator import RankCardGenerator

logger = logging.getLogger(__name__)

# 메시지당 적립 XP
XP_PER_MESSAGE = 5

# 쿨타임 (초)
COOLDOWN_SECONDS = 60


class RankCardCog(commands.Cog):
    """랭크 카드 명령어 Cog"""

    def __init__(self, bot: commands.Bot):
        self.bot = bot
        self.data_manager = XPDataManager()
        self.service = RankCardService(self.data_manager)
        self.session: aiohttp.ClientSession | None = None
        self.generator = RankCardGenerator()
        # 유저별 마지막 XP 적립 시간 (메모리 캐시)
        self._cooldowns: dict[int, float] = {}

    async def cog_load(self):
        self.session = aiohttp.ClientSession()
        self.generator.fetcher = ImageFetcher(self.session)
        await self.data_manager.ensure_initialized()
        await self.log("RankCardCog 로드됨")

    async def cog_unload(self):
        if self.session:
            await self.session.close()
        await self.data_manager.close()

    # ── 로깅 ──
    async def log(self, message: str):
        """로그 메시지를 Logger cog를 통해 전송합니다."""
        logger_cog = self.bot.get_cog('Logger')
        if logger_cog:
            await logger_cog.log(message, "RankCardCog")
        else:
            logger.info(message)

    # ── XP 적립 ──
    def _is_on_cooldown(self, user_id: int, now: float) -> bool:
        """유저가 쿨타임 중인지 확인합니다."""
        last_time = self._cooldowns.get(user_id)
        if last_time is None:
            return False
        return (now - last_time) < COOLDOWN_SECONDS

    def _prune_cooldowns(self, now: float):
        """쿨타임이 끝난 유저 기록을 정리합니다."""
        expired = [uid for uid, last in self._cooldowns.items() if now - last >= COOLDOWN_SECONDS]
        for uid in expired:
            del self._cooldowns[uid]

    @commands.Cog.listener()
    async def on_message(self, message: discord.Message):
        """메시지 이벤트를 감지하여 XP를 적립합니다."""
        if message.author.bot or message.guild is None:
            return

        # 시스템 메시지 무시
        if message.type != discord.MessageType.default:
            return

        now = time.time()
        if self._is_on_cooldown(message.author.id, now):
            return

        self._prune_cooldowns(now)
        self._cooldowns[message.author.id] = now
        await self.data_manager.add_xp(message.author.id, XP_PER_MESSAGE)

    # ── 공통 카드 생성 로직 ──
    async def _generate_and_send(
        self,
        ctx_or_interaction,
        user: discord.Member,
        *,
        is_slash: bool = False
    ):
        """
        랭크 카드를 생성하고 전송합니다.

        접두사 명령어와 슬래시 명령어 모두에서 사용되는 공통 로직입니다.
        1. 로딩 메시지 전송
        2. 카드 설정 구성
        3. 아바타/배지 로드 + 이미지 생성
        4. 결과 전송
        """
        loading_msg = None

        try:
            # 로딩 메시지
            if is_slash:
                await ctx_or_interaction.response.defer()
            else:
                loading_embed = discord.Embed(
                    description="랭크 카드를 생성하고 있어요...",
                    color=discord.Color.from_str("#23272A")
                )
                loading_msg = await ctx_or_interaction.send(embed=loading_embed)

            card = await self.service.build_card(user)
            image_buffer = await self.generator.render(card, self.service.style.caption)

            file = discord.File(image_buffer, filename="rank_card.png")

            if is_slash:
                await ctx_or_interaction.followup.send(file=file)
            else:
                await loading_msg.delete()
                await ctx_or_interaction.send(file=file)

            requester = ctx_or_interaction.user if is_slash else ctx_or_interaction.author
            guild = ctx_or_interaction.guild
            await self.log(
                f"{requester}({requester.id})님께서 "
                f"{user}({user.id})님의 랭크 카드를 조회했습니다. "
                f"[길드: {guild.name}({guild.id})]"
            )

        except MissingFieldError as e:
            await self.log(f"랭크 카드 정보 누락: {e.field} ({user.id})")
            await self._send_error(
                ctx_or_interaction, loading_msg, is_slash,
                f"❌ 랭크 카드 정보가 부족합니다. ({e.field})\n{e}"
            )

        except aiohttp.ClientError as e:
            await self.log(f"랭크 카드 이미지 로드 실패: {e}")
            await self._send_error(
                ctx_or_interaction, loading_msg, is_slash,
                "❌ 아바타 이미지를 불러올 수 없습니다."
            )

        except Exception as e:
            tb = traceback.format_exc()
            await self.log(f"랭크 카드 생성 오류: {e}\n{tb}")
            await self._send_error(
                ctx_or_interaction, loading_msg, is_slash,
                f"❌ 랭크 카드 생성 중 오류가 발생했습니다.\n```{type(e).__name__}: {e}```"
            )

    async def _send_error(self, ctx_or_interaction, loading_msg, is_slash: bool, description: str):
        """오류 임베드를 명령어 종류에 맞게 전송합니다."""
        error_embed = discord.Embed(description=description, color=discord.Color.red())

        if is_slash:
            if not ctx_or_interaction.response.is_done():
                await ctx_or_interaction.response.send_message(
                    embed=error_embed, ephemeral=True
                )
            else:
                await ctx_or_interaction.followup.send(
                    embed=error_embed, ephemeral=True
                )
        else:
            if loading_msg:
                await loading_msg.edit(embed=error_embed)
            else:
                await ctx_or_interaction.send(embed=error_embed)

    # ── 접두사 명령어: *rank / *랭크 ──
    @commands.command(name="rank", aliases=["랭크"])
    @commands.guild_only()
    async def rank_prefix(self, ctx: commands.Context, user: discord.Member = None):
        """랭크 카드를 확인합니다."""
        user = user or ctx.author
        await self._generate_and_send(ctx, user, is_slash=False)

    # ── 슬래시 명령어: /rank ──
    @app_commands.command(name="rank", description="랭크 카드를 확인합니다.")
    @app_commands.describe(user="확인할 사용자를 선택합니다. (미입력 시 현재 사용자)")
    @app_commands.guild_only()
    async def rank_slash(self, interaction: discord.Interaction, user: discord.Member = None):
        """랭크 카드를 확인하는 슬래시 명령어"""
        user = user or interaction.user
        await self._generate_and_send(interaction, user, is_slash=True)


async def setup(bot: commands.Bot):
    await bot.add_cog(RankCardCog(bot))
