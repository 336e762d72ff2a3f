"""
Report composition for shared showing sessions.

Two report types:
  - Property report: one property's details followed by its attachments.
  - Session report: a cover page summarizing the tour, then one page group
    per property (in tour order), each followed by its own attachments.

Section order within a property group:
  1.  Header (report title, or "PROPERTY i OF n" in a session)
  2.  Full address
  3.  Price
  4.  Quick stats (beds / baths / sq ft / year built)
  5.  Estimated monthly payment
  6.  Agent's note
  7.  Summary (bulleted)
  8.  Features
  9.  Description
  10. Property details table
  11. Attached document index
  12. Footer
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, Optional

from homefolio.models.schemas import (
    AgentIdentity, AttachmentRecord, PropertyRecord, SessionRecord,
)
from homefolio.services.bundler import DocumentBundler, doc_type_label
from homefolio.services.errors import NotFound
from homefolio.services.fetcher import BinaryFetcher, ImageAsset
from homefolio.services.mortgage import MortgageAssumptions, estimate_monthly_payment
from homefolio.services.renderer import (
    ADDRESS, BADGE, BODY, BODY_SOFT, FONT_BOLD, FOOTER, HEADING, MARKER,
    MARGIN, MUTED, NAVY, PAGE_W, PRICE, SMALL, STATS, TITLE,
    CircleOp, ImageOp, Page, RenderContext, TextOp, TextStyle,
)
from homefolio.services.store import ReportStore

logger = logging.getLogger(__name__)

AVATAR_SIZE = 64
SEPARATOR = "  •  "

COVER_TITLE = TextStyle(font=FONT_BOLD, size=28, color=NAVY)
COVER_SUBTITLE = TextStyle(size=18, color=BODY_SOFT.color, max_width=PAGE_W - 2 * MARGIN - AVATAR_SIZE - 24)
COVER_CLIENT = TextStyle(size=14, color=SMALL.color, max_width=COVER_SUBTITLE.max_width)
COVER_META = TextStyle(size=12, color=MUTED, max_width=COVER_SUBTITLE.max_width)
COVER_COUNT = TextStyle(font=FONT_BOLD, size=16, color=NAVY)
ENTRY_ADDRESS = TextStyle(font=FONT_BOLD, size=11)
ENTRY_DETAIL = TextStyle(size=10, color=SMALL.color, indent=20)
ENTRY_DOCS = TextStyle(size=9, color=MUTED, indent=20)
SESSION_ADDRESS = TextStyle(font=FONT_BOLD, size=16, color=NAVY)


@dataclass
class ComposedReport:
    pages: list[Page]
    title: str           # human-readable name used for the download filename
    document_title: str  # PDF metadata title

    @property
    def page_count(self) -> int:
        return len(self.pages)


# ──────────────────────────────────────────────────────────────────
# FORMATTING
# ──────────────────────────────────────────────────────────────────

def format_currency(value: float) -> str:
    return f"${round(value):,}"


def _num(value: float) -> str:
    return f"{value:g}" if value != int(value) else str(int(value))


def format_long_date(d: date) -> str:
    return f"{d:%B} {d.day}, {d.year}"


def format_session_date(d: date) -> str:
    return f"{d:%A}, {format_long_date(d)}"


def quick_stats(prop: PropertyRecord) -> list[str]:
    stats = []
    if prop.beds:
        stats.append(f"{_num(prop.beds)} Beds")
    if prop.baths:
        stats.append(f"{_num(prop.baths)} Baths")
    if prop.sqft:
        stats.append(f"{prop.sqft:,} Sq Ft")
    if prop.year_built:
        stats.append(f"Built {prop.year_built}")
    return stats


def property_details(prop: PropertyRecord) -> list[tuple[str, str]]:
    details = []
    if prop.property_type:
        details.append(("Property Type", prop.property_type))
    if prop.year_built:
        details.append(("Year Built", str(prop.year_built)))
    if prop.lot_size:
        details.append(("Lot Size", prop.lot_size))
    if prop.price and prop.sqft:
        details.append(("Price/Sq Ft", format_currency(prop.price / prop.sqft)))
    if prop.garage:
        details.append(("Parking", prop.garage))
    if prop.heating:
        details.append(("Heating", prop.heating))
    if prop.cooling:
        details.append(("Cooling", prop.cooling))
    if prop.hoa_fee:
        details.append(("HOA Fee", f"{format_currency(prop.hoa_fee)}/mo"))
    if prop.showing_time:
        details.append(("Showing Time", prop.showing_time))
    return details


def summary_bullets(summary: str) -> list[str]:
    bullets = []
    for line in summary.split("\n"):
        line = line.strip()
        if not line:
            continue
        bullets.append(line if line.startswith(("•", "-")) else f"• {line}")
    return bullets


def more_properties_line(count: int) -> str:
    return f"+ {count} more {'property' if count == 1 else 'properties'}"


def _initials(name: str) -> str:
    parts = [p for p in name.split() if p[:1].isalpha()]
    return "".join(p[0].upper() for p in parts[:2]) or "?"


# ──────────────────────────────────────────────────────────────────
# COMPOSER
# ──────────────────────────────────────────────────────────────────

class ReportComposer:
    def __init__(
        self,
        store: ReportStore,
        fetcher: BinaryFetcher,
        bundler: DocumentBundler,
        mortgage: MortgageAssumptions = MortgageAssumptions(),
        brand_name: str = "HomeFolio",
        product_logo_url: str = "",
        now: Callable[[], datetime] = datetime.now,
    ):
        self.store = store
        self.fetcher = fetcher
        self.bundler = bundler
        self.mortgage = mortgage
        self.brand_name = brand_name
        self.product_logo_url = product_logo_url
        self.now = now

    async def _fetch_logo(self, agent: AgentIdentity) -> Optional[ImageAsset]:
        url = agent.brokerage_logo_url or self.product_logo_url
        logo = await self.fetcher.fetch_image(url)
        if url and logo is None:
            logger.warning("Logo unavailable, using text header")
        return logo

    # ── Property report ──

    async def build_property_report(self, property_id: uuid.UUID) -> ComposedReport:
        prop = await self.store.get_property(property_id)
        if prop is None:
            raise NotFound("Property not found")

        attachments = (await self.store.list_attachments([prop.id])).get(prop.id, [])
        session = await self.store.get_session(prop.session_id)
        agent = await self.store.get_agent(session.admin_id if session else None)
        logo = await self._fetch_logo(agent)

        ctx = RenderContext(logo=logo, brand_name=self.brand_name)
        ctx.new_page()
        ctx.draw_text("PROPERTY DETAILS", TITLE)
        ctx.add_space(8)
        ctx.draw_text(prop.full_address, ADDRESS)
        ctx.add_space(4)
        prepared_by = agent.full_name + (f", {agent.company}" if agent.company else "")
        ctx.draw_text(f"Prepared by {prepared_by}", SMALL)
        ctx.add_space(16)
        self._property_body(ctx, prop, attachments)

        primary = len(ctx.pages)
        bundled = await self.bundler.bundle(ctx, attachments)
        logger.info("Composed property report %s: %d page(s), %d bundled", prop.id, primary, bundled)
        return ComposedReport(
            pages=ctx.pages,
            title=prop.address,
            document_title=f"{prop.full_address} - Property Details",
        )

    # ── Session report ──

    async def build_session_report(self, session: SessionRecord) -> ComposedReport:
        properties = await self.store.list_session_properties(session.id)
        if not properties:
            raise NotFound("No properties in session")

        attachments = await self.store.list_attachments([p.id for p in properties])
        agent = await self.store.get_agent(session.admin_id)
        logo = await self._fetch_logo(agent)
        avatar = await self.fetcher.fetch_image(agent.avatar_url)

        ctx = RenderContext(logo=logo, brand_name=self.brand_name)
        self._cover_page(ctx, session, agent, avatar, properties, attachments)

        total = len(properties)
        bundled = 0
        for i, prop in enumerate(properties, start=1):
            docs = attachments.get(prop.id, [])
            ctx.new_page()
            ctx.draw_text(f"PROPERTY {i} OF {total}", MARKER)
            ctx.add_space(8)
            ctx.draw_text(prop.full_address, SESSION_ADDRESS)
            ctx.add_space(12)
            self._property_body(ctx, prop, docs)
            bundled += await self.bundler.bundle(ctx, docs)

        logger.info(
            "Composed session report %s: %d properties, %d page(s), %d bundled",
            session.id, total, len(ctx.pages), bundled,
        )
        return ComposedReport(
            pages=ctx.pages,
            title=session.title,
            document_title=f"{session.title} - Property Tour",
        )

    def _cover_page(
        self,
        ctx: RenderContext,
        session: SessionRecord,
        agent: AgentIdentity,
        avatar: Optional[ImageAsset],
        properties: list[PropertyRecord],
        attachments: dict[uuid.UUID, list[AttachmentRecord]],
    ) -> None:
        """Single cover page; entries that do not fit are summarized in one line."""
        page = ctx.new_page()
        ctx.draw_text("PROPERTY TOUR", COVER_TITLE)
        ctx.add_space(10)

        avatar_top = ctx.y
        self._draw_avatar(ctx, page, agent, avatar, top=avatar_top)

        ctx.draw_text(session.title, COVER_SUBTITLE)
        ctx.add_space(8)
        ctx.draw_text(f"Prepared for {session.client_name}", COVER_CLIENT)
        by_line = agent.full_name + (f", {agent.company}" if agent.company else "")
        ctx.draw_text(f"by {by_line}", COVER_META)
        if session.session_date:
            ctx.add_space(12)
            ctx.draw_text(format_session_date(session.session_date), COVER_META)
        ctx.y = min(ctx.y, avatar_top - AVATAR_SIZE)
        ctx.add_space(30)

        total = len(properties)
        ctx.draw_text(f"{total} {'Property' if total == 1 else 'Properties'}", COVER_COUNT)
        ctx.add_space(10)

        more_height = ENTRY_DOCS.size + 4
        for i, prop in enumerate(properties, start=1):
            docs = attachments.get(prop.id, [])
            address = f"{i}. {prop.address}"
            details = " • ".join(
                part for part in (
                    format_currency(prop.price) if prop.price else "",
                    f"{_num(prop.beds)} bed" if prop.beds else "",
                    f"{_num(prop.baths)} bath" if prop.baths else "",
                ) if part
            )
            docs_line = (
                f"{len(docs)} document{'s' if len(docs) > 1 else ''} attached" if docs else ""
            )
            entry_height = (
                ctx.text_height(address, ENTRY_ADDRESS)
                + ctx.text_height(details, ENTRY_DETAIL)
                + ctx.text_height(docs_line, ENTRY_DOCS)
                + 10
            )
            remaining_after = total - i
            if ctx.remaining < entry_height + (more_height if remaining_after else 0):
                ctx.draw_text(more_properties_line(total - i + 1), ENTRY_DOCS)
                break

            ctx.draw_text(address, ENTRY_ADDRESS)
            ctx.draw_text(details, ENTRY_DETAIL)
            ctx.draw_text(docs_line, ENTRY_DOCS)
            ctx.add_space(10)

    def _draw_avatar(self, ctx: RenderContext, page: Page, agent: AgentIdentity,
                     avatar: Optional[ImageAsset], top: float) -> None:
        x = PAGE_W - MARGIN - AVATAR_SIZE
        if avatar is not None:
            scale = min(AVATAR_SIZE / avatar.width, AVATAR_SIZE / avatar.height)
            w, h = avatar.width * scale, avatar.height * scale
            page.ops.append(ImageOp(avatar.data, x + (AVATAR_SIZE - w) / 2, top - h, w, h))
            return
        # Initials badge when the avatar is missing or failed to load
        r = AVATAR_SIZE / 2
        cx, cy = x + r, top - r
        initials = _initials(agent.full_name)
        size = 20
        width = ctx.measure(initials, FONT_BOLD, size)
        page.ops.append(CircleOp(cx, cy, r, BADGE))
        page.ops.append(TextOp(initials, cx - width / 2, cy - size * 0.35, FONT_BOLD, size, NAVY))

    # ── Property blocks ──

    def _property_body(self, ctx: RenderContext, prop: PropertyRecord,
                       attachments: list[AttachmentRecord]) -> None:
        if prop.price:
            ctx.draw_text(format_currency(prop.price), PRICE)
            ctx.add_space(12)

        stats = quick_stats(prop)
        if stats:
            ctx.draw_text(SEPARATOR.join(stats), STATS)
            ctx.add_space(12)

        if prop.price:
            payment = estimate_monthly_payment(prop.price, self.mortgage)
            terms = self.mortgage
            ctx.draw_text(f"Est. {format_currency(payment.total)}/mo", HEADING)
            ctx.draw_text(
                f"Principal & interest {format_currency(payment.principal_interest)}"
                f"{SEPARATOR}Taxes {format_currency(payment.taxes)}"
                f"{SEPARATOR}Insurance {format_currency(payment.insurance)}"
                f" ({terms.interest_rate_pct:g}% / {terms.term_years} yrs, "
                f"{terms.down_payment_pct:g}% down)",
                SMALL,
            )
            ctx.add_space(16)

        if prop.agent_notes:
            self._section(ctx, "AGENT'S NOTE")
            ctx.draw_text(prop.agent_notes, BODY_SOFT)
            ctx.add_space(12)

        bullets = summary_bullets(prop.summary or "")
        if bullets:
            self._section(ctx, "SUMMARY")
            for bullet in bullets:
                ctx.draw_text(bullet, BODY_SOFT)
            ctx.add_space(12)

        if prop.features:
            self._section(ctx, "FEATURES")
            ctx.draw_text(SEPARATOR.join(prop.features), BODY)
            ctx.add_space(12)

        if prop.description:
            self._section(ctx, "ABOUT THIS HOME")
            ctx.draw_text(prop.description, BODY_SOFT)
            ctx.add_space(12)

        details = property_details(prop)
        if details:
            self._section(ctx, "PROPERTY DETAILS")
            for label, value in details:
                ctx.draw_key_value(label, value)
            ctx.add_space(12)

        if attachments:
            self._section(ctx, "ATTACHED DOCUMENTS")
            for doc in attachments:
                ctx.draw_text(f"• {doc.name} ({doc_type_label(doc.doc_type)})", BODY)
            ctx.add_space(12)

        ctx.add_space(20)
        ctx.draw_text(f"Generated on {format_long_date(self.now())}", FOOTER)
        ctx.draw_text(f"Powered by {self.brand_name}", FOOTER)

    def _section(self, ctx: RenderContext, title: str) -> None:
        # keep a heading together with at least its first body line
        ctx.ensure_space(HEADING.size + BODY.size + 14)
        ctx.draw_text(title, HEADING)
        ctx.add_space(6)
