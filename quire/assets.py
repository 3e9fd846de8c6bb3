"""Copies ``static/`` into the build output.

Each file goes to the highest-priority processor that accepts it. Images
are re-encoded by Pillow with ``optimize=True``; anything else, and any
image Pillow cannot read, is copied byte for byte.
"""

from __future__ import annotations

import logging
import shutil
from abc import ABC, abstractmethod
from collections.abc import Iterable
from pathlib import Path

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)


class BaseAssetProcessor(ABC):
    """Writes one static file into the output tree."""

    #: Processors with a higher priority are asked first.
    priority = 0

    @abstractmethod
    def can_process(self, path: Path) -> bool: ...

    @abstractmethod
    def write(self, source: Path, dest: Path) -> None: ...

    def process(self, source: Path, dest: Path) -> bool:
        dest.parent.mkdir(parents=True, exist_ok=True)
        self.write(source, dest)
        return True


class StaticAssetProcessor(BaseAssetProcessor):
    """Plain copy; accepts every file."""

    def can_process(self, path: Path) -> bool:
        return True

    def write(self, source: Path, dest: Path) -> None:
        shutil.copy2(source, dest)


class ImageProcessor(StaticAssetProcessor):
    priority = 100
    extensions = frozenset({".png", ".jpg", ".jpeg", ".webp"})

    def can_process(self, path: Path) -> bool:
        return path.suffix.lower() in self.extensions

    def write(self, source: Path, dest: Path) -> None:
        try:
            with Image.open(source) as image:
                image.save(dest, optimize=True)
        except (UnidentifiedImageError, OSError) as exc:
            logger.warning("Copying %s unoptimized: %s", source.name, exc)
            super().write(source, dest)


class AssetProcessorRegistry:
    def __init__(self, processors: Iterable[BaseAssetProcessor] = ()):
        self._processors: list[BaseAssetProcessor] = []
        for processor in processors:
            self.register(processor)

    def register(self, processor: BaseAssetProcessor) -> None:
        self._processors.append(processor)
        # stable sort keeps registration order among equal priorities
        self._processors.sort(key=lambda p: -p.priority)

    def get_processor(self, path: Path) -> BaseAssetProcessor | None:
        return next((p for p in self._processors if p.can_process(path)), None)

    def process(self, source: Path, dest: Path) -> bool:
        """Hand ``source`` to its processor; False when none accepts it."""
        processor = self.get_processor(source)
        return processor is not None and processor.process(source, dest)


def create_default_registry() -> AssetProcessorRegistry:
    return AssetProcessorRegistry([ImageProcessor(), StaticAssetProcessor()])


class AssetPipeline:
    """Mirrors ``<project>/static`` into ``output_dir``.

    Attributes:
        static_dir: Source directory.
        output_dir: Build output root.
        processor_registry: Chooses how each file is written.
    """

    def __init__(
        self,
        project_root: Path,
        output_dir: Path,
        processor_registry: AssetProcessorRegistry | None = None,
    ):
        self.static_dir = project_root / "static"
        self.output_dir = output_dir
        self.processor_registry = processor_registry or create_default_registry()

    def run(self) -> list[Path]:
        """Write every static file and return the destinations written."""
        if not self.static_dir.is_dir():
            return []
        written = []
        for source in sorted(self.static_dir.rglob("*")):
            if not source.is_file():
                continue
            dest = self.output_dir / source.relative_to(self.static_dir)
            if self.processor_registry.process(source, dest):
                written.append(dest)
        logger.debug("Copied %d static files", len(written))
        return written
