from pathlib import Path
from typing import Optional, Union

from photobooth.content import ARCHETYPES
from photobooth.models.session import Archetype, QuizResult, RacingTheme, ThemeSelection

ARCHETYPE_ORDER = list(ARCHETYPES)


class AssetResolver:
    """Maps logical asset names to packaged files or dev-server URLs."""

    def __init__(self, assets_dir: Union[str, Path], base_url: Optional[str] = None):
        self.assets_dir = Path(assets_dir)
        self.base_url = base_url.rstrip("/") if base_url else None

    @staticmethod
    def _normalize(name: str) -> str:
        return name[1:] if name.startswith("/") else name

    def resolve(self, name: str) -> str:
        name = self._normalize(name)
        if self.base_url:
            return f"{self.base_url}/{name}"
        return str(self.local_path(name))

    def local_path(self, name: str) -> Path:
        return self.assets_dir / self._normalize(name)

    def template_for(self, selection: Union[ThemeSelection, QuizResult, Archetype, RacingTheme]) -> str:
        if isinstance(selection, QuizResult):
            selection = selection.archetype
        elif isinstance(selection, ThemeSelection):
            selection = selection.theme

        if isinstance(selection, Archetype):
            return f"images/frame-{ARCHETYPE_ORDER.index(selection) + 1}.png"
        return f"images/frame-{RacingTheme(selection).value}.png"
