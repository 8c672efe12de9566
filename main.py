import discord
from discord.ext import commands
import os
import asyncio
import typing
from dotenv import load_dotenv

load_dotenv()
import logging

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("main")

application_id = os.environ.get("APPLICATION_ID")
owner_id = os.environ.get("OWNER_ID")

intents = discord.Intents.default()
intents.message_content = True
intents.members = True
intents.presences = True
bot = commands.Bot(
    command_prefix="*",
    intents=intents,
    help_command=None,
    owner_id=int(owner_id) if owner_id else None,
    application_id=application_id,
)
bot_token = os.environ.get("DISCORD_BOT_TOKEN")

# load cogs

async def load():
    success = []
    fail = []
    why = {}

    # Root source directory
    src_path = os.path.join(os.path.dirname(__file__), "src")

    # List of directories to ignore
    ignored_dirs = {"core", "__pycache__"}

    for item in sorted(os.listdir(src_path)):
        if item in ignored_dirs:
            continue

        item_path = os.path.join(src_path, item)
        if os.path.isdir(item_path):
            # Load all .py files in this directory as extensions
            for filename in sorted(os.listdir(item_path)):
                if filename.endswith(".py") and not filename.startswith("__"):
                    cog_name = f"src.{item}.{filename[:-3]}"
                    try:
                        await bot.load_extension(cog_name)
                        success.append(cog_name)
                    except Exception as e:
                        logger.exception(f"Failed to load {cog_name}")
                        fail.append(cog_name)
                        why[cog_name] = e

    for cog in fail:
        logger.error(f"{cog} cog가 로드에 실패하였습니다. 오류: {why[cog]}")
    logger.info(f"{len(success)}개의 확장이 로드되었습니다.")

# server start

async def main():
    if not bot_token:
        raise RuntimeError("DISCORD_BOT_TOKEN 환경 변수가 설정되지 않았습니다.")

    async with bot:
        await load()
        await bot.start(bot_token)

 # bot ready

@bot.event
async def on_ready():
    logger.info(f"Online! ({bot.user})")

    activity = discord.CustomActivity(name="랭크 카드를 그리고 있어요...")
    await bot.change_presence(status=discord.Status.online, activity=activity)

 # slash command sync

@bot.command()
@commands.guild_only()
@commands.is_owner()
async def sync(
    ctx: commands.Context, guilds: commands.Greedy[discord.Object], mode: typing.Optional[typing.Literal["~","*","^"]] = None) -> None:
    if not guilds:
        if mode == "~":
            synced = await ctx.bot.tree.sync(guild=ctx.guild)
        elif mode == "*":
            ctx.bot.tree.copy_global_to(guild=ctx.guild)
            synced = await ctx.bot.tree.sync(guild=ctx.guild)
        elif mode == "^":
            ctx.bot.tree.clear_commands(guild=ctx.guild)
            await ctx.bot.tree.sync(guild=ctx.guild)
            synced = []
        else:
            synced = await ctx.bot.tree.sync()

        await ctx.send(
            f"Synced {len(synced)} commands {'globally' if mode is None else 'to the current guild.'}"
        )
        return

    ret = 0
    for guild in guilds:
        try:
            await ctx.bot.tree.sync(guild=guild)
        except discord.HTTPException:
            logger.warning(f"Failed to sync to {guild.id}")
        else:
            ret += 1

    await ctx.send(f"Synced the tree to {ret}/{len(guilds)}.")

@sync.error
async def sync_error(ctx, error):
    logger.error(f"error in sync: {error}")

if __name__ == "__main__":
    asyncio.run(main())
