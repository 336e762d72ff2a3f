"""Tests for property and session report composition."""

import uuid
from datetime import date

import pytest

from factories import (
    ADMIN_ID, FIXED_NOW, FakeFetcher, FakeStorage, FakeStore, make_attachment,
    make_image, make_pdf, make_property, make_session,
)
from homefolio.models.schemas import AgentIdentity
from homefolio.services.bundler import DocumentBundler
from homefolio.services.composer import (
    ReportComposer, format_currency, format_session_date, more_properties_line,
    property_details, quick_stats, summary_bullets,
)
from homefolio.services.errors import NotFound
from homefolio.services.fetcher import FetchedAsset
from homefolio.services.renderer import CircleOp, ImageOp

LOGO_URL = "https://cdn.test/brokerage-logo.png"
PRODUCT_LOGO_URL = "https://cdn.test/homefolio.png"
AVATAR_URL = "https://cdn.test/avatar.jpg"


def png(width=240, height=64):
    return FetchedAsset(make_image(width, height), "image/png")


def composer_for(store, fetcher=None, storage=None, **kwargs):
    fetcher = fetcher or FakeFetcher()
    bundler = DocumentBundler(storage or FakeStorage(), fetcher)
    return ReportComposer(store, fetcher, bundler, now=lambda: FIXED_NOW, **kwargs)


def drawn_lines(report):
    lines = []
    for page in report.pages:
        if not page.is_imported:
            lines.extend(page.text_lines())
    return lines


def bare_property(session, **overrides):
    data = dict(
        summary=None, description=None, features=None, agent_notes=None,
        lot_size=None, garage=None, year_built=None,
    )
    data.update(overrides)
    return make_property(session, **data)


# ──────────────────────────────────────────────────────────────
# FORMATTING
# ──────────────────────────────────────────────────────────────

class TestFormatting:
    def test_currency(self):
        assert format_currency(500000) == "$500,000"
        assert format_currency(277.78) == "$278"

    def test_session_date(self):
        assert format_session_date(date(2026, 10, 24)) == "Saturday, October 24, 2026"

    def test_quick_stats(self):
        prop = make_property(make_session(), beds=3, baths=2.5)
        assert quick_stats(prop) == ["3 Beds", "2.5 Baths", "1,800 Sq Ft", "Built 1995"]

    def test_quick_stats_skips_missing(self):
        prop = make_property(make_session(), beds=None, sqft=None, year_built=None)
        assert quick_stats(prop) == ["2 Baths"]

    def test_summary_bullets(self):
        text = "Updated kitchen\n\n- Big yard\n• Quiet street\n"
        assert summary_bullets(text) == ["• Updated kitchen", "- Big yard", "• Quiet street"]

    def test_property_details(self):
        prop = make_property(make_session(), heating="Forced air", hoa_fee=250,
                             showing_time="10:30")
        details = dict(property_details(prop))
        assert details["Price/Sq Ft"] == "$278"
        assert details["Parking"] == "2-car attached"
        assert details["Heating"] == "Forced air"
        assert details["HOA Fee"] == "$250/mo"
        assert details["Showing Time"] == "10:30"
        assert "Cooling" not in details

    def test_more_properties_line(self):
        assert more_properties_line(1) == "+ 1 more property"
        assert more_properties_line(7) == "+ 7 more properties"


# ──────────────────────────────────────────────────────────────
# PROPERTY REPORT
# ──────────────────────────────────────────────────────────────

class TestPropertyReport:
    @pytest.mark.asyncio
    async def test_sections_in_order(self):
        session = make_session()
        prop = make_property(session)
        doc = make_attachment(prop, "Seller Disclosure", "docs/d.pdf")
        store = FakeStore([session], [prop], [doc])

        report = await composer_for(store).build_property_report(prop.id)
        lines = drawn_lines(report)

        expected = [
            "PROPERTY DETAILS",
            "123 Main St, Springfield, IL, 62704",
            "Prepared by Your Agent",
            "$500,000",
            "Est. $3,128/mo",
            "AGENT'S NOTE",
            "SUMMARY",
            "• Updated kitchen",
            "FEATURES",
            "ABOUT THIS HOME",
            "Price/Sq Ft",
            "ATTACHED DOCUMENTS",
            "• Seller Disclosure (Disclosure)",
            "Generated on October 19, 2026",
            "Powered by HomeFolio",
        ]
        positions = [lines.index(text) for text in expected]
        assert positions == sorted(positions)
        assert report.title == "123 Main St"
        assert report.document_title == "123 Main St, Springfield, IL, 62704 - Property Details"

    @pytest.mark.asyncio
    async def test_agent_and_company(self):
        session = make_session()
        prop = make_property(session)
        agents = {ADMIN_ID: AgentIdentity(full_name="Dana Smith", company="Acme Realty")}
        store = FakeStore([session], [prop], agents=agents)

        report = await composer_for(store).build_property_report(prop.id)
        assert "Prepared by Dana Smith, Acme Realty" in drawn_lines(report)

    @pytest.mark.asyncio
    async def test_minimal_property(self):
        session = make_session()
        prop = bare_property(session, price=None, beds=None, baths=None, sqft=None)
        store = FakeStore([session], [prop])

        report = await composer_for(store).build_property_report(prop.id)
        lines = drawn_lines(report)
        assert report.page_count == 1
        assert not any(line.startswith("Est.") for line in lines)
        assert "PROPERTY DETAILS" in lines
        assert lines.count("PROPERTY DETAILS") == 1

    @pytest.mark.asyncio
    async def test_missing_property(self):
        store = FakeStore([make_session()])
        with pytest.raises(NotFound):
            await composer_for(store).build_property_report(uuid.uuid4())

    @pytest.mark.asyncio
    async def test_attachments_follow_property_pages(self):
        session = make_session()
        prop = bare_property(session)
        docs = [
            make_attachment(prop, "Disclosure", "docs/d.pdf"),
            make_attachment(prop, "Floor plan", "docs/plan.png", "floor_plan"),
        ]
        storage = FakeStorage({"docs/d.pdf": "https://f/d", "docs/plan.png": "https://f/p"})
        fetcher = FakeFetcher({
            "https://f/d": FetchedAsset(make_pdf(2), "application/pdf"),
            "https://f/p": png(400, 300),
        })
        store = FakeStore([session], [prop], docs)

        report = await composer_for(store, fetcher, storage).build_property_report(prop.id)
        assert report.page_count == 4
        assert [p.is_imported for p in report.pages] == [False, True, True, False]

    @pytest.mark.asyncio
    async def test_long_description_flows_onto_more_pages(self):
        session = make_session()
        prop = make_property(session, description="word " * 3000)
        store = FakeStore([session], [prop])

        report = await composer_for(store).build_property_report(prop.id)
        assert report.page_count > 1
        for page in report.pages:
            assert page.text_lines().count("HomeFolio") == 1


class TestRunningHeader:
    @pytest.mark.asyncio
    async def test_brokerage_logo_on_every_page(self):
        session = make_session()
        prop = make_property(session, description="word " * 3000)
        agents = {ADMIN_ID: AgentIdentity(full_name="Dana Smith", brokerage_logo_url=LOGO_URL)}
        fetcher = FakeFetcher({LOGO_URL: png()})
        store = FakeStore([session], [prop], agents=agents)

        report = await composer_for(store, fetcher).build_property_report(prop.id)
        assert report.page_count > 1
        for page in report.pages:
            assert isinstance(page.ops[0], ImageOp)
            assert "HomeFolio" not in page.text_lines()

    @pytest.mark.asyncio
    async def test_product_logo_when_no_brokerage_logo(self):
        session = make_session()
        prop = make_property(session)
        fetcher = FakeFetcher({PRODUCT_LOGO_URL: png()})
        store = FakeStore([session], [prop])

        composer = composer_for(store, fetcher, product_logo_url=PRODUCT_LOGO_URL)
        report = await composer.build_property_report(prop.id)
        assert fetcher.requested == [PRODUCT_LOGO_URL]
        assert isinstance(report.pages[0].ops[0], ImageOp)

    @pytest.mark.asyncio
    async def test_text_header_when_logo_fails(self):
        session = make_session()
        prop = make_property(session)
        agents = {ADMIN_ID: AgentIdentity(brokerage_logo_url=LOGO_URL)}
        store = FakeStore([session], [prop], agents=agents)

        report = await composer_for(store, FakeFetcher()).build_property_report(prop.id)
        assert report.pages[0].text_lines()[0] == "HomeFolio"

    @pytest.mark.asyncio
    async def test_text_header_when_logo_undecodable(self):
        session = make_session()
        prop = make_property(session)
        agents = {ADMIN_ID: AgentIdentity(brokerage_logo_url=LOGO_URL)}
        fetcher = FakeFetcher({LOGO_URL: FetchedAsset(b"<html>", "image/png")})
        store = FakeStore([session], [prop], agents=agents)

        report = await composer_for(store, fetcher).build_property_report(prop.id)
        assert report.pages[0].text_lines()[0] == "HomeFolio"

    @pytest.mark.asyncio
    async def test_custom_brand_name(self):
        session = make_session()
        prop = make_property(session)
        store = FakeStore([session], [prop])

        report = await composer_for(store, brand_name="Acme Tours").build_property_report(prop.id)
        lines = report.pages[0].text_lines()
        assert lines[0] == "Acme Tours"
        assert "Powered by Acme Tours" in lines


# ──────────────────────────────────────────────────────────────
# SESSION REPORT
# ──────────────────────────────────────────────────────────────

class TestSessionReport:
    @pytest.mark.asyncio
    async def test_cover_page(self):
        session = make_session()
        props = [make_property(session, address=f"{n} Oak Ave", order_index=n) for n in range(3)]
        docs = [
            make_attachment(props[0], "Disclosure", "docs/a.pdf"),
            make_attachment(props[0], "Survey", "docs/b.pdf", "survey"),
        ]
        store = FakeStore([session], props, docs)

        report = await composer_for(store).build_session_report(session)
        cover = report.pages[0].text_lines()
        assert cover[0] == "HomeFolio"
        assert "PROPERTY TOUR" in cover
        assert "Saturday Tour" in cover
        assert "Prepared for Jordan Lee" in cover
        assert "by Your Agent" in cover
        assert "Saturday, October 24, 2026" in cover
        assert "3 Properties" in cover
        assert "1. 0 Oak Ave" in cover
        assert "$500,000 • 3 bed • 2 bath" in cover
        assert "2 documents attached" in cover
        assert report.title == "Saturday Tour"
        assert report.document_title == "Saturday Tour - Property Tour"

    @pytest.mark.asyncio
    async def test_singular_property_count(self):
        session = make_session(session_date=None)
        store = FakeStore([session], [make_property(session)])

        report = await composer_for(store).build_session_report(session)
        cover = report.pages[0].text_lines()
        assert "1 Property" in cover
        assert not any(line.startswith("Saturday,") for line in cover)

    @pytest.mark.asyncio
    async def test_initials_badge_without_avatar(self):
        session = make_session()
        agents = {ADMIN_ID: AgentIdentity(full_name="Dana Smith", avatar_url=AVATAR_URL)}
        store = FakeStore([session], [make_property(session)], agents=agents)

        report = await composer_for(store, FakeFetcher()).build_session_report(session)
        cover = report.pages[0]
        assert any(isinstance(op, CircleOp) for op in cover.ops)
        assert "DS" in cover.text_lines()

    @pytest.mark.asyncio
    async def test_avatar_image(self):
        session = make_session()
        agents = {ADMIN_ID: AgentIdentity(full_name="Dana Smith", avatar_url=AVATAR_URL)}
        fetcher = FakeFetcher({AVATAR_URL: FetchedAsset(make_image(128, 128, "JPEG"), "image/jpeg")})
        store = FakeStore([session], [make_property(session)], agents=agents)

        report = await composer_for(store, fetcher).build_session_report(session)
        cover = report.pages[0]
        images = [op for op in cover.ops if isinstance(op, ImageOp)]
        assert len(images) == 1
        assert (images[0].width, images[0].height) == (64, 64)
        assert not any(isinstance(op, CircleOp) for op in cover.ops)

    @pytest.mark.asyncio
    async def test_properties_in_tour_order_with_own_attachments(self):
        session = make_session()
        second = bare_property(session, address="2 Elm St", order_index=1)
        first = bare_property(session, address="1 Elm St", order_index=0)
        third = bare_property(session, address="3 Elm St", order_index=2)
        docs = [make_attachment(first, "Inspection", "docs/insp.pdf", "inspection")]
        storage = FakeStorage({"docs/insp.pdf": "https://f/insp"})
        fetcher = FakeFetcher({"https://f/insp": FetchedAsset(make_pdf(2), "application/pdf")})
        store = FakeStore([session], [second, third, first], docs)

        report = await composer_for(store, fetcher, storage).build_session_report(session)
        pages = report.pages
        assert [p.is_imported for p in pages] == [False, False, True, True, False, False]
        assert "PROPERTY 1 OF 3" in pages[1].text_lines()
        assert "1 Elm St, Springfield, IL, 62704" in pages[1].text_lines()
        assert "PROPERTY 2 OF 3" in pages[4].text_lines()
        assert "PROPERTY 3 OF 3" in pages[5].text_lines()

    @pytest.mark.asyncio
    async def test_cover_stays_one_page_for_long_tours(self):
        session = make_session()
        props = [bare_property(session, address=f"{n} Pine Rd", order_index=n) for n in range(40)]
        store = FakeStore([session], props)

        report = await composer_for(store).build_session_report(session)
        cover = report.pages[0].text_lines()
        assert report.page_count == 41
        assert any(line.startswith("+ ") and line.endswith(" more properties") for line in cover)
        assert "PROPERTY 1 OF 40" in report.pages[1].text_lines()

    @pytest.mark.asyncio
    async def test_empty_session(self):
        session = make_session()
        with pytest.raises(NotFound):
            await composer_for(FakeStore([session])).build_session_report(session)
