import hashlib
import base64
from dataclasses import dataclass
from typing import Iterator, List


@dataclass(frozen=True)
class StagedImage:
    id: str
    data: str  # base64 JPEG, no data-URL prefix
    source: str  # "camera" or "upload"
    label: str = ""


def image_id(b64: str) -> str:
    return hashlib.md5(base64.b64decode(b64)).hexdigest()


def make_staged(b64: str, source: str, label: str = "") -> StagedImage:
    return StagedImage(id=image_id(b64), data=b64, source=source, label=label)


class StagingList:
    """Ordered images waiting to be sent in a single analysis request."""

    def __init__(self, items=None):
        self._items: List[StagedImage] = list(items or [])

    def add(self, image: StagedImage) -> bool:
        """Append `image`; returns False when the same image is already staged."""
        if image.id in self.ids():
            return False
        self._items.append(image)
        return True

    def remove(self, image_id: str) -> bool:
        before = len(self._items)
        self._items = [img for img in self._items if img.id != image_id]
        return len(self._items) != before

    def clear(self):
        self._items = []

    def ids(self) -> List[str]:
        return [img.id for img in self._items]

    def payloads(self) -> List[str]:
        return [img.data for img in self._items]

    def __len__(self):
        return len(self._items)

    def __iter__(self) -> Iterator[StagedImage]:
        return iter(list(self._items))

    def __bool__(self):
        return bool(self._items)
