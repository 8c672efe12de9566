"""
랭크 카드용 이미지(아바타, 배지)를 불러오는 모듈입니다.
http/https는 aiohttp로 내려받고, file: URL은 로컬 파일을 읽습니다.
실패는 재시도 없이 그대로 호출자에게 전달됩니다.
"""

import asyncio
import io
import logging
from typing import Optional
from urllib.parse import urlsplit
from urllib.request import url2pathname

import aiohttp
from PIL import Image

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


def decode_image(data: bytes) -> Image.Image:
    """바이트를 RGBA 이미지로 디코딩합니다. 이미지가 아니면 UnidentifiedImageError가 발생합니다."""
    image = Image.open(io.BytesIO(data))
    image.load()
    return image.convert('RGBA')


class ImageFetcher:
    """URL → PIL 이미지"""

    def __init__(self, session: Optional[aiohttp.ClientSession] = None, timeout: float = DEFAULT_TIMEOUT):
        self.session = session
        self.timeout = aiohttp.ClientTimeout(total=timeout)

    async def fetch(self, url: str) -> Image.Image:
        """URL에서 이미지를 불러와 디코딩합니다."""
        scheme = urlsplit(url).scheme.lower()

        if scheme in ("http", "https"):
            data = await self._download(url)
        elif scheme == "file":
            data = await asyncio.to_thread(self._read_file, url)
        else:
            raise ValueError(f"지원하지 않는 URL 스킴입니다: {scheme!r}")

        logger.debug(f"이미지 로드 완료: {url} ({len(data)} bytes)")
        return decode_image(data)

    async def _download(self, url: str) -> bytes:
        if self.session is not None:
            return await self._get(self.session, url)

        async with aiohttp.ClientSession(timeout=self.timeout) as session:
            return await self._get(session, url)

    async def _get(self, session: aiohttp.ClientSession, url: str) -> bytes:
        async with session.get(url, timeout=self.timeout) as resp:
            resp.raise_for_status()
            return await resp.read()

    @staticmethod
    def _read_file(url: str) -> bytes:
        parts = urlsplit(url)
        path = url2pathname(parts.path)
        with open(path, "rb") as f:
            return f.read()


async def setup(bot):
    pass  # 유틸리티 모듈 (Cog 없음)
