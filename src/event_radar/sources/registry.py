"""
Static catalog of the event listings the radar crawls.

Every source needs its own extraction hints: the instructions are passed
verbatim to the extraction model, so they describe the page as it actually
looks (selectors, date format, price wording).
"""

from typing import Dict, List

from event_radar.shared.schemas.dto import FetchStrategy, SourceDescriptor
from event_radar.shared.utils.errors import SourceNotFoundError

_SOURCES = [
    # ================== HIGH PRIORITY ==================
    SourceDescriptor(
        name="InnCubator",
        url="https://www.inncubator.at/events",
        strategy=FetchStrategy.JS_RENDER,
        instructions="""
        InnCubator is an Angular SPA, events load dynamically.
        - Event container: article.event-item
        - Date split across spans: span.event-weekday ("Freitag"),
          span.event-day ("31.10"), span.event-year ("2025")
        - Title: h2.event-title
        - Table rows: "Uhrzeit" (e.g. "09:00-12:45 Uhr"), "Ort" (venue or
          "Online"), "Format" (category), "Preis"
        - Link: a.event-link
        Only include events where Preis = "kostenlos". Skip "siehe Website"
        and any other price indication.
        """,
        html_pattern="article.event-item",
        date_format="Weekday DD.MM in separate spans",
        notes="Angular SPA. Date split across 3 spans. Only 'kostenlos' events.",
        max_chars=50000,
        render_wait_ms=5000,
    ),
    SourceDescriptor(
        name="Startup.Tirol",
        url="https://www.startup.tirol/events/",
        strategy=FetchStrategy.STRUCTURED_API,
        api_url="https://www.startup.tirol/wp-json/tribe/events/v1/events",
        instructions="""
        The Events Calendar (WordPress) JSON. Each item has title,
        start_date ("YYYY-MM-DD HH:MM:SS"), venue.venue, venue.city, url and
        cost. Most events are FREE startup events: pitches, workshops,
        networking, Stammtisch. Skip items with a non-empty cost that is not
        "0", "free" or "kostenlos".
        """,
        date_format="start_date as YYYY-MM-DD HH:MM:SS",
        max_chars=25000,
    ),
    SourceDescriptor(
        name="WKO Tirol",
        url="https://www.wko.at/veranstaltungen/start?bundesland=T",
        search_url="https://www.wko.at/veranstaltungen/start?bundesland=T",
        instructions="""
        - Event containers: li.col-md-6.col-lg-4 with div.card.card-eventbox
        - Date: three dd elements, e.g. "Mi 10 Dez"
        - Title: h4 after the date
        - Location: text after the pin icon (bi-geo-alt-fill)
        - Description: p element; link: a.stretched-link
        Include events with "kostenlos", "gratis" or no price mentioned.
        """,
        html_pattern="li.col-md-6.col-lg-4 div.card.card-eventbox",
        date_format="Weekday DD Month (e.g. Mi 10 Dez)",
        notes="Must keep ?bundesland=T in the URL.",
        max_chars=25000,
    ),
    SourceDescriptor(
        name="AI Austria",
        url="https://aiaustria.com/event-calendar",
        instructions="""
        AI Austria calendar page. Most AI/ML community events are FREE.
        Include online events (Zoom/Teams). Dates may be in English format.
        Location is often Vienna; include online events for Tirol access.
        """,
    ),
    SourceDescriptor(
        name="Standortagentur Tirol",
        url="https://www.standort-tirol.at/veranstaltungen",
        instructions="""
        Innovation and business events as teasers or list items.
        German dates "15.01.2025". Many FREE info events and workshops on
        innovation, digitalisation and funding. Include if there is no price
        or only "Anmeldung erforderlich".
        """,
        date_format="DD.MM.YYYY",
    ),
    SourceDescriptor(
        name="Impact Hub Tirol",
        url="https://tirol.impacthub.net/en/collection/?_sf_tag=upcoming-events",
        strategy=FetchStrategy.JS_RENDER,
        instructions="""
        Event cards in a grid, mix of FREE and paid events. Include community
        events, open house and workshops. Location "Impact Hub Tirol,
        Innsbruck". English content.
        """,
        date_format="Month DD, YYYY (e.g. January 15, 2025)",
    ),
    # ================== COMMUNITY PLATFORMS ==================
    SourceDescriptor(
        name="Meetup Innsbruck",
        url="https://www.meetup.com/find/at--innsbruck/",
        strategy=FetchStrategy.STRUCTURED_API,
        api_url="https://www.meetup.com/api/recommended/events",
        active=False,
        requires_auth=True,
        instructions="""
        Tech meetups (AI, startup, programming) at bars and cafes in
        Innsbruck. Most are FREE.
        """,
        notes="Needs an API login; kept inactive.",
        max_chars=25000,
    ),
    SourceDescriptor(
        name="Engineering Kiosk Alps",
        url="https://engineeringkiosk.dev/meetup/alps/",
        active=False,
        instructions="""
        Software engineering and DevOps meetups at rotating venues in
        Innsbruck. All events are FREE. German or English content.
        """,
        max_chars=15000,
        default_time="19:00",
    ),
    # ================== ACADEMIC ==================
    SourceDescriptor(
        name="Uni Innsbruck",
        url="https://www.uibk.ac.at/events/",
        instructions="""
        University events in .event-item or article elements. Most are FREE
        and public: lectures, workshops, conferences. Location is a
        university building.
        """,
        date_format='"15.01.2025" or "15. Jänner"',
    ),
    SourceDescriptor(
        name="MCI",
        url="https://www.mci4me.at/de/events",
        active=False,
        instructions="""
        MCI Management Center Innsbruck. Many FREE public lectures and info
        sessions. Location "MCI, Universitätsstraße 15".
        """,
    ),
    SourceDescriptor(
        name="FH Kufstein",
        url="https://www.fh-kufstein.ac.at/service/events",
        active=False,
        instructions="""
        Academic and public events, FREE lectures and workshops. City is
        Kufstein (still Tirol). German content.
        """,
    ),
    SourceDescriptor(
        name="LSZ",
        url="https://lsz.at/",
        instructions="""
        Life Science Center Innsbruck. Look in the events or news section
        for dated biotech seminars and talks, many FREE. Location
        "LSZ, Mitterweg 24".
        """,
        max_chars=15000,
    ),
    # ================== CULTURAL VENUES ==================
    SourceDescriptor(
        name="Das Wundervoll",
        url="https://www.daswundervoll.at/en/about-wundervoll/events",
        active=False,
        instructions="""
        Cultural venue programme, mix of FREE and ticketed. Include talks,
        workshops and community events. Location "Das Wundervoll, Innsbruck".
        """,
    ),
    SourceDescriptor(
        name="Die Bäckerei",
        url="https://diebaeckerei.at/programm",
        instructions="""
        Kulturbackstube programme. Many FREE talks, workshops and meetups.
        Location "Die Bäckerei, Dreiheiligenstraße 21a".
        """,
    ),
    SourceDescriptor(
        name="WeLocally Innsbruck",
        url="https://innsbruck.welocally.at/region/treffen",
        active=False,
        instructions="""
        Local community meetups, most FREE. German content.
        """,
    ),
    SourceDescriptor(
        name="DIH West",
        url="https://www.dih-west.at/events",
        active=False,
        instructions="""
        Digital Innovation Hub West. FREE workshops and info sessions on
        digital transformation and Industry 4.0. Include online events.
        """,
    ),
    # ================== LOW PRIORITY ==================
    SourceDescriptor(
        name="Innsbruck.info",
        url="https://www.innsbruck.info/brauchtum-und-events/veranstaltungskalender.html",
        instructions="""
        Tourism calendar, very broad. ONLY include clearly FREE events:
        free festivals, public events, openings. Skip concerts, sports and
        paid culture.
        """,
        max_chars=25000,
    ),
    SourceDescriptor(
        name="Congress Messe Innsbruck",
        url="https://www.cmi.at/de/veranstaltungskalender",
        instructions="""
        Congress and trade fair centre. Only public days with FREE entry and
        open house events; most listings are commercial. Location
        "Messe Innsbruck".
        """,
    ),
]

SOURCE_REGISTRY: Dict[str, SourceDescriptor] = {source.name: source for source in _SOURCES}


def get_source(name: str) -> SourceDescriptor:
    """
    Look up a source by its display name.

    Raises:
        SourceNotFoundError: If no source has that name
    """
    try:
        return SOURCE_REGISTRY[name]
    except KeyError:
        raise SourceNotFoundError(f"Unknown source: {name}")


def get_active_sources() -> List[SourceDescriptor]:
    return [source for source in SOURCE_REGISTRY.values() if source.active]


def get_sources_by_strategy(strategy: FetchStrategy) -> List[SourceDescriptor]:
    return [source for source in SOURCE_REGISTRY.values() if source.strategy == strategy]


def list_source_names() -> List[str]:
    return list(SOURCE_REGISTRY)
