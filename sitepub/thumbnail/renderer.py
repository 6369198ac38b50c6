"""Thumbnail (Open Graph image) renderer."""

import io
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from PIL import Image, ImageDraw, ImageFont
from rich.console import Console

from ..errors import RenderError, StorageError
from ..models import ContentItem, Lang
from ..storage import ContentStore

console = Console()

SIZE = (1200, 630)
BACKGROUND = "#F2F3F3"
ACCENT = "#EB9D3F"
PANEL = "#FFFFFF"
TEXT = "#000000"

# (x, y, width, height)
ACCENT_BOX = (60, 68, 1098, 514)
PANEL_BOX = (48, 54, 1098, 514)


@dataclass(frozen=True)
class TextBlock:
    """Fixed position and size of one line of text. Sizes are in points."""

    x: int
    y: int
    latin_pt: int
    cjk_pt: int


TITLE = TextBlock(110, 180, 62, 62)
DESCRIPTION = TextBlock(120, 280, 30, 30)
DATE_RANGE = TextBlock(120, 500, 16, 18)
SITE_NAME = TextBlock(820, 500, 32, 32)


def pt_to_px(pt: int) -> int:
    """Convert CSS points to pixels at 96 dpi."""
    return round(pt * 96 / 72)


class ThumbnailRenderer:
    """Composite a fixed layout thumbnail for a content item."""

    def __init__(
        self,
        store: ContentStore,
        latin_font: Optional[str] = None,
        cjk_font: Optional[str] = None,
        site_name: str = "Builder News",
    ) -> None:
        """
        Initialize renderer.

        Args:
            store: Content store receiving the image
            latin_font: Font file for Latin text (Pillow default face when None)
            cjk_font: CJK capable font file for Japanese text (Pillow default face when None)
            site_name: Watermark text
        """
        self.store = store
        self.latin_font = latin_font
        self.cjk_font = cjk_font
        self.site_name = site_name
        self._fonts: Dict[Tuple[Optional[str], int], ImageFont.FreeTypeFont] = {}

    def _font(self, path: Optional[str], pt: int) -> ImageFont.FreeTypeFont:
        size = pt_to_px(pt)
        key = (path, size)
        if key not in self._fonts:
            try:
                if path is None:
                    self._fonts[key] = ImageFont.load_default(size=size)
                else:
                    self._fonts[key] = ImageFont.truetype(path, size)
            except OSError as e:
                raise RenderError(f"Font unavailable ({path or 'default'}): {e}") from e
        return self._fonts[key]

    def _face_for(self, lang: Lang, block: TextBlock) -> ImageFont.FreeTypeFont:
        if lang == Lang.JA:
            return self._font(self.cjk_font, block.cjk_pt)
        return self._font(self.latin_font, block.latin_pt)

    def render_image(self, item: ContentItem) -> bytes:
        """
        Composite the thumbnail as PNG bytes.

        Layout is fixed; text that does not fit is clipped by the canvas.
        """
        image = Image.new("RGB", SIZE, BACKGROUND)
        draw = ImageDraw.Draw(image)

        for box, color in ((ACCENT_BOX, ACCENT), (PANEL_BOX, PANEL)):
            x, y, width, height = box
            draw.rectangle((x, y, x + width - 1, y + height - 1), fill=color)

        for block, text in (
            (TITLE, item.title),
            (DESCRIPTION, item.description),
            (DATE_RANGE, item.pub_date_range),
        ):
            draw.text((block.x, block.y), text, fill=TEXT, font=self._face_for(item.lang, block), anchor="lm")

        watermark = self._font(self.latin_font, SITE_NAME.latin_pt)
        draw.text((SITE_NAME.x, SITE_NAME.y), self.site_name, fill=TEXT, font=watermark, anchor="lm")

        buffer = io.BytesIO()
        try:
            image.save(buffer, format="PNG")
        except (OSError, ValueError) as e:
            raise RenderError(f"PNG encoding failed: {e}") from e
        return buffer.getvalue()

    def render(self, item: ContentItem) -> bytes:
        """Render the thumbnail and write it to the item's thumbnail key."""
        data = self.render_image(item)
        try:
            self.store.put(item.thumbnail_key, data)
        except StorageError as e:
            raise RenderError(f"Failed to store thumbnail: {e.reason}") from e

        console.print(f"[green]✓[/green] Rendered {item.lang.value} thumbnail: {item.thumbnail_key}")
        return data
