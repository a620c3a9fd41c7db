"""Signature images stored on the local filesystem.

Files live at ``{base_path}/{owner}/{uuid}.{ext}``, where the owner is a
user id or ``company`` for the company stamp; the database keeps only the
relative path.
"""

import asyncio
import uuid
from pathlib import Path

from crewhours.core.exceptions import ValidationError

# Leading bytes of the image formats accepted for signatures.
IMAGE_SIGNATURES: dict[str, tuple[bytes, ...]] = {
    "png": (b"\x89PNG\r\n\x1a\n",),
    "jpg": (b"\xff\xd8\xff",),
    "jpeg": (b"\xff\xd8\xff",),
}


class SignatureStorage:
    def __init__(self, base_path: str, max_size: int) -> None:
        self.base_path = Path(base_path)
        self.max_size = max_size

    @staticmethod
    def extension_of(filename: str | None) -> str:
        if not filename or "." not in filename:
            return ""
        return filename.rsplit(".", 1)[-1].lower()

    def validate(self, filename: str | None, data: bytes) -> str:
        """Check type and size of an upload and return its normalized extension."""
        extension = self.extension_of(filename)
        magic = IMAGE_SIGNATURES.get(extension)
        if magic is None:
            allowed = ", ".join(sorted(IMAGE_SIGNATURES))
            raise ValidationError(f"Invalid file type '.{extension}'. Allowed: {allowed}.")
        if len(data) > self.max_size:
            raise ValidationError(
                f"Signature image is larger than {self.max_size // 1024} KB."
            )
        if not data.startswith(magic):
            raise ValidationError(f"The file is not a valid .{extension} image.")
        return extension

    def full_path(self, storage_path: str) -> Path:
        path = (self.base_path / storage_path).resolve()
        if not path.is_relative_to(self.base_path.resolve()):
            raise ValidationError(f"Invalid storage path: {storage_path}")
        return path

    async def save(self, owner: str, data: bytes, extension: str) -> str:
        storage_path = f"{owner}/{uuid.uuid4().hex}.{extension}"
        path = self.full_path(storage_path)
        await asyncio.to_thread(path.parent.mkdir, parents=True, exist_ok=True)
        await asyncio.to_thread(path.write_bytes, data)
        return storage_path

    async def read(self, storage_path: str) -> bytes:
        path = self.full_path(storage_path)
        if not await asyncio.to_thread(path.exists):
            raise FileNotFoundError(f"File not found at storage path: {storage_path}")
        return await asyncio.to_thread(path.read_bytes)

    async def delete(self, storage_path: str) -> None:
        path = self.full_path(storage_path)
        await asyncio.to_thread(path.unlink, missing_ok=True)
