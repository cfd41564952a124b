"""Image helpers shared by the vision-capable LLM adapters."""

from __future__ import annotations


def detect_media_type(image_bytes: bytes) -> str:
    """Detect the MIME type of an image from its magic bytes.

    Extracted images keep whatever format the source embedded (PNG and JPEG
    from office files, JPEG frames from ffmpeg, occasionally GIF or WEBP),
    so the extension is not trusted.

    PNG starts with: 89 50 4E 47 0D 0A 1A 0A
    GIF starts with: GIF87a / GIF89a
    WEBP starts with: RIFF....WEBP
    JPEG starts with: FF D8
    """
    if image_bytes[:8] == b"\x89PNG\r\n\x1a\n":
        return "image/png"
    if image_bytes[:6] in (b"GIF87a", b"GIF89a"):
        return "image/gif"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    if image_bytes[:2] == b"\xff\xd8":
        return "image/jpeg"
    return "image/jpeg"
