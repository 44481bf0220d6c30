"""Final image compositing.

Caption selection is the only random step and lives in ``select_captions``;
the ``compose_*`` functions are pure functions of their inputs.
"""

import base64
import io
import logging
import random
from functools import lru_cache
from typing import List, Mapping, NamedTuple, Optional, Sequence

from PIL import Image, ImageDraw, ImageFont

from photobooth.assets import AssetResolver
from photobooth.content import ARCHETYPES, CONTENT_TYPES, DARK_ARCHETYPES
from photobooth.exceptions import AssetLoadError, InvalidImageError
from photobooth.models.session import QuizResult, ThemeSelection
from photobooth.services.session import SessionState
from photobooth.services.storage import split_data_uri

logger = logging.getLogger(__name__)

ARCHETYPE_CANVAS = (1280, 1920)
RACING_CANVAS = (1080, 1920)

PHOTO_HEIGHT = 480
PHOTO_WIDTH = int(PHOTO_HEIGHT / (9 / 16))
PHOTO_OFFSETS = [318, 798]

FONT_SIZE = 36
LINE_HEIGHT = 44
SECTION_SPACING = 12
TYPE_SPACING = 8
MAX_LINES = 6
MAX_TEXT_RATIO = 0.45

LIGHT_TEXT = "#ffffff"
DARK_TEXT = "#3f2b2e"

BOLD_ITALIC_FONTS = [
    "fonts/caption-bold-italic.ttf",
    "DejaVuSerif-BoldItalic.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSerif-BoldItalic.ttf",
    "/System/Library/Fonts/Supplemental/Georgia Bold Italic.ttf",
]
ITALIC_FONTS = [
    "fonts/caption-italic.ttf",
    "DejaVuSerif-Italic.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSerif-Italic.ttf",
    "/System/Library/Fonts/Supplemental/Georgia Italic.ttf",
]


class Caption(NamedTuple):
    category: str
    label: str
    text: str


class CaptionFonts(NamedTuple):
    label: ImageFont.ImageFont
    text: ImageFont.ImageFont


@lru_cache(maxsize=8)
def _load_font(candidates: tuple, size: int):
    for font_path in candidates:
        try:
            return ImageFont.truetype(font_path, size)
        except OSError:
            continue
    return ImageFont.load_default(size)


def load_caption_fonts(assets: Optional[AssetResolver] = None, size: int = FONT_SIZE) -> CaptionFonts:
    def candidates(paths):
        if assets is None:
            return tuple(p for p in paths if not p.startswith("fonts/"))
        return tuple(str(assets.local_path(p)) if p.startswith("fonts/") else p for p in paths)

    return CaptionFonts(
        label=_load_font(candidates(BOLD_ITALIC_FONTS), size),
        text=_load_font(candidates(ITALIC_FONTS), size),
    )


def select_captions(
        contents: Mapping[str, Sequence[str]],
        labels: Mapping[str, str] = CONTENT_TYPES,
        rng: Optional[random.Random] = None,
) -> List[Caption]:
    """Pick two distinct categories, then one candidate string from each."""
    rng = rng or random.Random()
    categories = [key for key, items in contents.items() if items]
    if len(categories) < 2:
        return []

    return [
        Caption(category=key, label=labels.get(key, key), text=rng.choice(list(contents[key])))
        for key in rng.sample(categories, 2)
    ]


def wrap_text(draw: ImageDraw.ImageDraw, text: str, font, max_width: float) -> List[str]:
    lines: List[str] = []
    line = ""
    for word in text.split(" "):
        candidate = f"{line}{word} "
        if draw.textlength(candidate, font=font) > max_width and line:
            lines.append(line.strip())
            line = f"{word} "
        else:
            line = candidate
    if line.strip():
        lines.append(line.strip())
    return lines


def _fit(image: Image.Image, size) -> Image.Image:
    return image.convert("RGBA").resize(size, Image.Resampling.LANCZOS)


def _draw_lines(draw, lines, font, x, y, fill) -> float:
    for index, line in enumerate(lines):
        draw.text((x, y + index * LINE_HEIGHT), line, font=font, fill=fill, anchor="mm")
    return y + len(lines) * LINE_HEIGHT


def compose_archetype(
        photos: Sequence[Image.Image],
        template: Image.Image,
        captions: Sequence[Caption] = (),
        dark: bool = False,
        fonts: Optional[CaptionFonts] = None,
) -> Image.Image:
    if len(photos) != len(PHOTO_OFFSETS):
        raise ValueError(f"Expected {len(PHOTO_OFFSETS)} photos, got {len(photos)}")

    width, height = ARCHETYPE_CANVAS
    canvas = Image.new("RGBA", ARCHETYPE_CANVAS, (0, 0, 0, 0))
    x = (width - PHOTO_WIDTH) // 2
    for photo, y in zip(photos, PHOTO_OFFSETS):
        canvas.paste(_fit(photo, (PHOTO_WIDTH, PHOTO_HEIGHT)), (x, y))

    canvas = Image.alpha_composite(canvas, _fit(template, ARCHETYPE_CANVAS))

    if not captions:
        return canvas

    fonts = fonts or load_caption_fonts()
    draw = ImageDraw.Draw(canvas)
    fill = LIGHT_TEXT if dark else DARK_TEXT
    max_width = width * MAX_TEXT_RATIO

    blocks = [
        (wrap_text(draw, caption.label, fonts.label, max_width),
         wrap_text(draw, caption.text, fonts.text, max_width))
        for caption in captions
    ]
    total_lines = sum(len(label) + len(text) for label, text in blocks)

    # Fewer lines push the group down so it stays centred in the caption band
    y = height * 3 / 4 + SECTION_SPACING * 2 + max(0, MAX_LINES - total_lines - 1) * (LINE_HEIGHT / 2)
    for index, (label_lines, text_lines) in enumerate(blocks):
        if index:
            y += SECTION_SPACING
        y = _draw_lines(draw, label_lines, fonts.label, width / 2, y + TYPE_SPACING, fill)
        y = _draw_lines(draw, text_lines, fonts.text, width / 2, y + TYPE_SPACING, fill)

    return canvas


def compose_racing(base: Image.Image, frame: Optional[Image.Image] = None) -> Image.Image:
    canvas = Image.new("RGBA", RACING_CANVAS, (0, 0, 0, 0))
    canvas.paste(_fit(base, RACING_CANVAS), (0, 0))
    if frame is not None:
        canvas = Image.alpha_composite(canvas, _fit(frame, RACING_CANVAS))
    return canvas


def encode_png(image: Image.Image) -> str:
    buffer = io.BytesIO()
    image.save(buffer, format='PNG')
    return "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode('utf-8')


def decode_image(encoded: str) -> Image.Image:
    try:
        _, payload = split_data_uri(encoded)
        image = Image.open(io.BytesIO(payload))
        image.load()
    except (InvalidImageError, OSError) as e:
        raise AssetLoadError(f"Could not decode image: {e}") from e
    return image


class CompositorService:
    def __init__(self, assets: AssetResolver, rng: Optional[random.Random] = None):
        self.assets = assets
        self.rng = rng or random.Random()

    def load_image(self, name: str) -> Image.Image:
        path = self.assets.local_path(name)
        try:
            image = Image.open(path)
            image.load()
        except OSError as e:
            raise AssetLoadError(f"Could not load asset {name}: {e}") from e
        return image

    def composite(
            self,
            session: SessionState,
            ai_image: Optional[Image.Image] = None,
            frame_optional: bool = True,
    ) -> str:
        """Build the final photo for the session and store it as a PNG data URI."""
        selection = session.selection
        if selection is None:
            raise ValueError("No theme or quiz result selected")
        if len(session.photos) != session.required_photo_count:
            raise ValueError(f"{session.required_photo_count} photo(s) required")

        template_name = self.assets.template_for(selection)

        if isinstance(selection, QuizResult):
            template = self.load_image(template_name)
            profile = ARCHETYPES[selection.archetype]
            captions = select_captions(profile.contents, CONTENT_TYPES, self.rng)
            logger.info("Compositing %s with captions %s", selection.archetype.value,
                        [c.category for c in captions])
            image = compose_archetype(
                session.photos,
                template,
                captions,
                dark=selection.archetype in DARK_ARCHETYPES,
                fonts=load_caption_fonts(self.assets),
            )
        elif isinstance(selection, ThemeSelection):
            try:
                frame = self.load_image(template_name)
            except AssetLoadError as e:
                if not frame_optional:
                    raise
                logger.warning("Skipping racing frame overlay: %s", e)
                frame = None
            image = compose_racing(ai_image if ai_image is not None else session.photos[0], frame)
        else:
            raise ValueError(f"Unsupported selection: {selection!r}")

        session.final_photo = encode_png(image)
        return session.final_photo
