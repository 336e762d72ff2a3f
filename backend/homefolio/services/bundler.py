"""
Attachment bundling and final PDF assembly.

Attachments are appended after the composed pages they belong to:
  - PDF documents: every page copied verbatim (original size, no re-flow)
  - PNG / JPEG images: one Letter page, scaled down to fit and centered
  - anything else: skipped

A failure on one attachment (signing, fetch, parse) is logged and skipped;
it never affects other attachments or the composed pages.
"""

from __future__ import annotations

import logging
from io import BytesIO
from typing import Optional

from pypdf import PdfReader, PdfWriter

from homefolio.models.schemas import AttachmentRecord
from homefolio.services.fetcher import BinaryFetcher, load_image
from homefolio.services.renderer import (
    PAGE_H, PAGE_W, ImageOp, Page, RenderContext, render_pages,
)
from homefolio.services.storage import StorageClient

logger = logging.getLogger(__name__)

DOC_TYPE_LABELS = {
    "disclosure": "Disclosure",
    "inspection": "Inspection",
    "floor_plan": "Floor Plan",
    "hoa": "HOA",
    "survey": "Survey",
    "title": "Title",
    "mls_info": "MLS Info",
    "other": "Document",
}


def doc_type_label(doc_type: Optional[str]) -> str:
    return DOC_TYPE_LABELS.get(doc_type or "other", "Document")


def sniff_content_type(content_type: str) -> Optional[str]:
    """Embedding strategy for a declared MIME type: "pdf", "image" or None."""
    ct = (content_type or "").lower()
    if "pdf" in ct:
        return "pdf"
    if "image" in ct and ("png" in ct or "jpeg" in ct or "jpg" in ct):
        return "image"
    return None


def pdf_pages(data: bytes) -> list[Page]:
    """Copy every page of a foreign PDF.

    Pages go through a staging writer so that a broken document fails here,
    inside the per-attachment guard, and not while writing the final report.
    """
    reader = PdfReader(BytesIO(data))
    if reader.is_encrypted and not reader.decrypt(""):
        raise ValueError("encrypted PDF")

    staging = PdfWriter()
    for page in reader.pages:
        staging.add_page(page)
    buffer = BytesIO()
    staging.write(buffer)

    copied = PdfReader(BytesIO(buffer.getvalue()))
    return [
        Page(width=float(p.mediabox.width), height=float(p.mediabox.height), imported=p)
        for p in copied.pages
    ]


def image_page(data: bytes) -> Page:
    """A full Letter page with the image centered, never upscaled."""
    image = load_image(data)
    if image is None:
        raise ValueError("unreadable image")
    scale = min(PAGE_W / image.width, PAGE_H / image.height, 1)
    w, h = image.width * scale, image.height * scale
    return Page(ops=[ImageOp(image.data, (PAGE_W - w) / 2, (PAGE_H - h) / 2, w, h)])


class DocumentBundler:
    def __init__(self, storage: StorageClient, fetcher: BinaryFetcher, signed_url_ttl: int = 60):
        self.storage = storage
        self.fetcher = fetcher
        self.signed_url_ttl = signed_url_ttl

    async def bundle(self, ctx: RenderContext, attachments: list[AttachmentRecord]) -> int:
        """Append each attachment's pages to *ctx* in order. Returns pages added."""
        added = 0
        for attachment in attachments:
            try:
                pages = await self._attachment_pages(attachment)
            except Exception as exc:
                logger.warning("Could not embed %s: %s", attachment.name, exc)
                continue
            for page in pages:
                ctx.append_page(page)
            if pages:
                logger.info("Appended %d page(s) from %s", len(pages), attachment.name)
            added += len(pages)
        return added

    async def _attachment_pages(self, attachment: AttachmentRecord) -> list[Page]:
        url = await self.storage.create_signed_url(attachment.file_url, self.signed_url_ttl)
        if not url:
            logger.warning("Could not get signed URL for %s", attachment.name)
            return []

        asset = await self.fetcher.fetch(url)
        if asset is None:
            logger.warning("Could not fetch %s", attachment.name)
            return []

        kind = sniff_content_type(asset.content_type)
        if kind == "pdf":
            return pdf_pages(asset.content)
        if kind == "image":
            return [image_page(asset.content)]

        logger.info("Skipping %s: unsupported content type %r", attachment.name, asset.content_type)
        return []


def assemble_pdf(pages: list[Page], title: str = "") -> bytes:
    """Write drawn and imported pages, in order, into one PDF."""
    drawn = [p for p in pages if not p.is_imported]
    drawn_pages = iter(())
    if drawn:
        drawn_pages = iter(PdfReader(BytesIO(render_pages(drawn, title=title))).pages)

    writer = PdfWriter()
    for page in pages:
        writer.add_page(page.imported if page.is_imported else next(drawn_pages))
    if title:
        writer.add_metadata({"/Title": title})

    buffer = BytesIO()
    writer.write(buffer)
    return buffer.getvalue()
