"""Perceptual near-duplicate detection.

Hashes are computed on a 16x16 grayscale downsample, giving 256 bits
rendered as 64 hex characters. Two images are considered the same picture
when their similarity is at least the configured threshold; recall is
approximate by nature.
"""
import io
import logging
from typing import Dict, NamedTuple, Optional

import imagehash
from PIL import Image

logger = logging.getLogger(__name__)

HASH_SIZE = 16
HASH_BITS = HASH_SIZE * HASH_SIZE
DEFAULT_SIMILARITY_THRESHOLD = 0.92


class ImageHash(NamedTuple):
    hash: str
    width: int
    height: int


class DuplicateResult(NamedTuple):
    is_duplicate: bool
    similarity: float
    matching_id: Optional[str] = None


class ImageMetadata(NamedTuple):
    width: int
    height: int
    format: str
    size: int


def _open(content: bytes) -> Image.Image:
    img = Image.open(io.BytesIO(content))
    img.load()
    return img


def compute_perceptual_hash(content: bytes) -> ImageHash:
    """Average hash: bit is set where a pixel is brighter than the mean."""
    img = _open(content)
    width, height = img.size
    return ImageHash(str(imagehash.average_hash(img, hash_size=HASH_SIZE)), width, height)


def compute_difference_hash(content: bytes) -> str:
    """Gradient hash: bit set where a pixel is brighter than its left neighbour."""
    return str(imagehash.dhash(_open(content), hash_size=HASH_SIZE))


def _hex_to_bits(value: str) -> str:
    return "".join(format(int(ch, 16), "04b") for ch in value)


def hamming_distance(hash1: str, hash2: str) -> int:
    """Differing bits over the common prefix plus the length difference in bits."""
    bits1 = _hex_to_bits(hash1)
    bits2 = _hex_to_bits(hash2)
    distance = sum(1 for a, b in zip(bits1, bits2) if a != b)
    return distance + abs(len(bits1) - len(bits2))


def similarity(hash1: str, hash2: str) -> float:
    return 1 - hamming_distance(hash1, hash2) / HASH_BITS


def get_image_metadata(content: bytes) -> ImageMetadata:
    img = _open(content)
    width, height = img.size
    return ImageMetadata(width, height, (img.format or "unknown").lower(), len(content))


def meets_minimum_resolution(content: bytes, min_resolution: int) -> bool:
    width, height = _open(content).size
    return width >= min_resolution and height >= min_resolution


class ImageDeduplicator:
    """Accumulates perceptual hashes for one job and answers near-duplicate queries.

    Matching is a linear scan over the accepted hashes; the first match at or
    above the threshold wins.
    """

    def __init__(self, similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD):
        self.similarity_threshold = similarity_threshold
        self._hashes: Dict[str, str] = {}

    def _find_match(self, hash_value: str) -> DuplicateResult:
        for existing_id, existing_hash in self._hashes.items():
            score = similarity(hash_value, existing_hash)
            if score >= self.similarity_threshold:
                return DuplicateResult(True, score, existing_id)
        return DuplicateResult(False, 0.0)

    def check_duplicate(self, content: bytes) -> DuplicateResult:
        return self._find_match(compute_perceptual_hash(content).hash)

    def add_image(self, image_id: str, content: bytes) -> DuplicateResult:
        """Insert the image unless it matches one already accepted."""
        hash_value = compute_perceptual_hash(content).hash
        match = self._find_match(hash_value)
        if match.is_duplicate:
            logger.debug("Image %s is a near duplicate of %s (%.3f)", image_id, match.matching_id, match.similarity)
            return match
        self._hashes[image_id] = hash_value
        return match

    def get_hash(self, image_id: str) -> Optional[str]:
        return self._hashes.get(image_id)

    def clear(self) -> None:
        self._hashes.clear()

    @property
    def size(self) -> int:
        return len(self._hashes)
