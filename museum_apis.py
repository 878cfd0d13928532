"""
Museum API integrations for the artwork aggregator.
Supports the Metropolitan Museum of Art, Art Institute of Chicago, Cleveland
Museum of Art, Victoria and Albert Museum, Rijksmuseum, Harvard Art Museums,
Smithsonian Open Access, Europeana and NYPL Digital Collections.

Every adapter returns a list of Artwork and never raises: a source that is
down, misconfigured or returns something odd simply contributes nothing.
"""
import logging
import random
import re
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from functools import wraps
from typing import Callable, Optional

import requests
from requests.adapters import HTTPAdapter

import config
from errors import MissingCredential, SourceUnavailable
from models import MISSING_IMAGE, Rejected, make_artwork

logger = logging.getLogger(__name__)


def _strip_html(text):
    """Remove HTML tags from text."""
    if not text:
        return ""
    clean = re.sub(r'<[^>]+>', '', text)
    clean = clean.replace('&nbsp;', ' ').replace('&amp;', '&')
    clean = re.sub(r'\s+', ' ', clean).strip()
    return clean


# API configuration - no keys required
MET_BASE_URL = "https://collectionapi.metmuseum.org/public/collection/v1"
AIC_BASE_URL = "https://api.artic.edu/api/v1"
AIC_IIIF_URL = "https://www.artic.edu/iiif/2"
CLEVELAND_BASE_URL = "https://openaccess-api.clevelandart.org/api"
VAM_BASE_URL = "https://api.vam.ac.uk/v2"

# API configuration - keys from environment
RIJKS_BASE_URL = "https://www.rijksmuseum.nl/api/en"
HARVARD_BASE_URL = "https://api.harvardartmuseums.org"
SMITHSONIAN_BASE_URL = "https://api.si.edu/openaccess/api/v1.0"
EUROPEANA_BASE_URL = "https://api.europeana.eu/record/v2"
NYPL_BASE_URL = "https://api.repo.nypl.org/api/v2"

# Concurrent detail lookups inside a single two-step source
DETAIL_WORKERS = 8

_session = None
_session_lock = threading.Lock()


def get_session():
    """Get or create the shared HTTP session."""
    global _session
    with _session_lock:
        if _session is None:
            session = requests.Session()
            adapter = HTTPAdapter(pool_connections=16, pool_maxsize=config.SOURCE_WORKERS)
            session.mount("https://", adapter)
            session.mount("http://", adapter)
            _session = session
    return _session


def _make_request(url, params=None, headers=None, source=""):
    """GET a JSON document, raising SourceUnavailable on any failure."""
    try:
        response = get_session().get(
            url, params=params, headers=headers, timeout=config.REQUEST_TIMEOUT
        )
        response.raise_for_status()
        return response.json()
    except requests.RequestException as e:
        raise SourceUnavailable(source, str(e)) from e
    except ValueError as e:
        raise SourceUnavailable(source, f"invalid JSON: {e}") from e


def _require_key(source, setting):
    key = config.api_key(setting)
    if not key:
        raise MissingCredential(source, setting)
    return key


def _adapter(source):
    """Turn every failure of a source call into an empty result."""
    def decorator(f):
        @wraps(f)
        def decorated(*args, **kwargs):
            try:
                return f(*args, **kwargs)
            except MissingCredential as e:
                logger.info("Skipping %s: %s not set", source, e.setting)
            except SourceUnavailable as e:
                logger.warning("Source %s unavailable: %s", source, e)
            except (KeyError, IndexError, TypeError, AttributeError, ValueError) as e:
                logger.warning("Source %s returned an unexpected payload: %r", source, e)
            return []
        return decorated
    return decorator


def _keep(candidates, limit=None):
    """Drop rejected candidates, keeping at most `limit` artworks."""
    artworks = []
    for candidate in candidates:
        if candidate is None:
            continue
        if isinstance(candidate, Rejected):
            logger.debug("Dropped %s-%s: %s", candidate.source,
                         candidate.native_id, candidate.reason)
            continue
        artworks.append(candidate)
        if limit is not None and len(artworks) >= limit:
            break
    return artworks


def _lookup_all(lookup, keys):
    """Run `lookup` over `keys` concurrently, preserving order."""
    if not keys:
        return []
    with ThreadPoolExecutor(max_workers=min(DETAIL_WORKERS, len(keys))) as executor:
        return list(executor.map(lookup, keys))


def _first(values, default=None):
    """First element of a list-valued field, or the value itself."""
    if isinstance(values, list):
        return values[0] if values else default
    return values if values else default


# Metropolitan Museum of Art API
MET_QUERIES = [
    "painting", "impressionism", "modern art", "portrait",
    "landscape", "sculpture", "abstract", "renaissance",
]


def _met_object_ids(query):
    data = _make_request(
        f"{MET_BASE_URL}/search",
        {"hasImages": "true", "q": query},
        source="met"
    )
    return data.get("objectIDs") or []


def _met_get_artwork(object_id):
    """Fetch one Met object. The image only comes with the detail record,
    so a failed lookup drops the item."""
    try:
        data = _make_request(f"{MET_BASE_URL}/objects/{object_id}", source="met")
    except SourceUnavailable as e:
        logger.debug("Met object %s unavailable: %s", object_id, e)
        return None
    if not isinstance(data, dict):
        return None
    return _format_met_artwork(data)


def _format_met_artwork(item):
    """Format Met Museum object data."""
    # Build a description from available metadata
    description_parts = []
    if item.get("artistDisplayBio"):
        description_parts.append(item["artistDisplayBio"])

    culture = item.get("culture", "")
    department = item.get("department", "")
    if culture and culture != department:
        kind = item.get("classification") or "work"
        description_parts.append(f"This {kind} represents {culture} artistic traditions.")
    if department:
        description_parts.append(f"Part of the Met's {department} collection.")

    return make_artwork(
        "met", item.get("objectID", ""), item.get("primaryImage"),
        require_title=True,
        title=item.get("title"),
        artist=item.get("artistDisplayName"),
        year=item.get("objectDate"),
        medium=item.get("medium"),
        thumbnail_url=item.get("primaryImageSmall"),
        source_url=item.get("objectURL"),
        department=department,
        culture=culture,
        classification=item.get("classification"),
        description=" ".join(description_parts),
        dimensions=item.get("dimensions"),
        credit_line=item.get("creditLine"),
    )


def _met_collect(object_ids, quota):
    # Ask for a few extra: some objects come back without an image
    candidates = object_ids[:quota * 2]
    return _keep(_lookup_all(_met_get_artwork, candidates), quota)


@_adapter("met")
def met_fetch(quota=20):
    """Random Met artworks: search a random term, then look up a sample."""
    query = random.choice(MET_QUERIES)
    object_ids = _met_object_ids(query)
    if not object_ids:
        return []
    sample = random.sample(object_ids, min(len(object_ids), 100))
    return _met_collect(sample, quota)


@_adapter("met")
def met_search(query, limit=20):
    """Search Metropolitan Museum of Art collection."""
    return _met_collect(_met_object_ids(query), limit)


# Art Institute of Chicago API
AIC_FIELDS = ",".join([
    "id", "title", "artist_title", "artist_display", "date_display",
    "medium_display", "image_id", "department_title", "place_of_origin",
    "classification_title", "description", "short_description",
    "dimensions", "credit_line",
])


def _aic_image_url(iiif_url, image_id, size):
    return f"{iiif_url}/{image_id}/full/{size},/0/default.jpg"


def _aic_description(item):
    """Prefer the short description, then the full one, then build one."""
    if item.get("short_description"):
        return _strip_html(item["short_description"])
    if item.get("description"):
        text = _strip_html(item["description"])
        if len(text) > 500:
            return text[:497] + "..."
        return text

    parts = []
    if item.get("artist_display"):
        parts.append(item["artist_display"])
    if item.get("place_of_origin"):
        parts.append(f"Origin: {item['place_of_origin']}")
    if item.get("department_title"):
        parts.append(f"Part of the Art Institute's {item['department_title']} collection.")
    return ". ".join(parts)


def _format_aic_artwork(item, iiif_url=AIC_IIIF_URL):
    """Format Art Institute of Chicago artwork data."""
    image_id = item.get("image_id")
    return make_artwork(
        "artic", item.get("id", ""),
        _aic_image_url(iiif_url, image_id, 843) if image_id else None,
        title=item.get("title"),
        artist=item.get("artist_title"),
        year=item.get("date_display"),
        medium=item.get("medium_display"),
        thumbnail_url=_aic_image_url(iiif_url, image_id, 400) if image_id else None,
        source_url=f"https://www.artic.edu/artworks/{item.get('id')}",
        department=item.get("department_title"),
        culture=item.get("place_of_origin"),
        classification=item.get("classification_title"),
        description=_aic_description(item),
        dimensions=item.get("dimensions"),
        credit_line=item.get("credit_line"),
    )


def _aic_results(data, limit):
    iiif_url = (data.get("config") or {}).get("iiif_url") or AIC_IIIF_URL
    return _keep((_format_aic_artwork(item, iiif_url) for item in data["data"]), limit)


@_adapter("artic")
def aic_fetch(quota=20):
    """Public-domain artworks from a random page of the AIC catalog."""
    params = {
        "fields": AIC_FIELDS,
        "limit": quota,
        "page": random.randint(1, 100),
        "query[term][is_public_domain]": "true",
    }
    data = _make_request(f"{AIC_BASE_URL}/artworks", params, source="artic")
    return _aic_results(data, quota)


@_adapter("artic")
def aic_search(query, limit=20):
    """Search Art Institute of Chicago collection."""
    params = {"q": query, "fields": AIC_FIELDS, "limit": limit}
    data = _make_request(f"{AIC_BASE_URL}/artworks/search", params, source="artic")
    return _aic_results(data, limit)


# Cleveland Museum of Art API (no API key required)
CLEVELAND_QUERIES = [
    "impressionism", "portrait", "landscape", "renaissance",
    "modern", "abstract", "sculpture",
]


def _format_cleveland_artwork(item):
    """Format Cleveland Museum artwork data."""
    images = item.get("images") or {}
    image_url = (images.get("web") or {}).get("url")

    creators = item.get("creators") or []
    artist = creators[0].get("description") if creators else None

    return make_artwork(
        "cleveland", item.get("id", ""), image_url,
        title=item.get("title"),
        artist=artist,
        year=item.get("creation_date"),
        medium=item.get("technique"),
        source_url=f"https://www.clevelandart.org/art/{item.get('accession_number')}",
        department=item.get("department"),
        culture=_first(item.get("culture")),
        classification=item.get("type"),
        description=_strip_html(item.get("description")),
        dimensions=item.get("measurements"),
        credit_line=item.get("credit_line"),
    )


def _cleveland_query(query, limit, skip=0):
    params = {"q": query, "has_image": 1, "cc0": 1, "limit": limit, "skip": skip}
    data = _make_request(f"{CLEVELAND_BASE_URL}/artworks/", params, source="cleveland")
    return _keep((_format_cleveland_artwork(item) for item in data["data"]), limit)


@_adapter("cleveland")
def cleveland_fetch(quota=20):
    """CC0 artworks for a random query at a random offset."""
    return _cleveland_query(random.choice(CLEVELAND_QUERIES), quota, random.randint(0, 99))


@_adapter("cleveland")
def cleveland_search(query, limit=20):
    """Search Cleveland Museum of Art collection."""
    return _cleveland_query(query, limit)


# Victoria and Albert Museum API (no API key required)
VAM_QUERIES = [
    "painting", "sculpture", "portrait", "landscape",
    "textile", "ceramic", "photograph", "print",
]


def _vam_image_url(item):
    """IIIF base first, then an upscaled thumbnail, then the image id."""
    images = item.get("_images") or {}
    if images.get("_iiif_image_base_url"):
        return f"{images['_iiif_image_base_url']}full/!800,800/0/default.jpg"
    if images.get("_primary_thumbnail"):
        return images["_primary_thumbnail"].replace("!100,100", "!800,800")
    if item.get("_primaryImageId"):
        return f"https://framemark.vam.ac.uk/collections/{item['_primaryImageId']}/full/!800,800/0/default.jpg"
    return None


def _format_vam_artwork(item):
    """Format V&A object data."""
    system_number = item.get("systemNumber", "")
    return make_artwork(
        "vam", system_number, _vam_image_url(item),
        title=item.get("_primaryTitle"),
        artist=(item.get("_primaryMaker") or {}).get("name"),
        year=item.get("_primaryDate"),
        medium=item.get("materialsAndTechniques"),
        thumbnail_url=(item.get("_images") or {}).get("_primary_thumbnail"),
        source_url=f"https://collections.vam.ac.uk/item/{system_number}",
        department=item.get("objectType"),
        culture=item.get("_primaryPlace"),
        description=item.get("physicalDescription"),
        credit_line=item.get("creditLine"),
    )


def _vam_query(query, limit, page=None):
    params = {"q": query, "images_exist": "true", "page_size": limit}
    if page:
        params["page"] = page
    data = _make_request(f"{VAM_BASE_URL}/objects/search", params, source="vam")
    return _keep((_format_vam_artwork(item) for item in data["records"]), limit)


@_adapter("vam")
def vam_fetch(quota=20):
    """V&A objects for a random query on a random page."""
    return _vam_query(random.choice(VAM_QUERIES), quota, random.randint(1, 50))


@_adapter("vam")
def vam_search(query, limit=20):
    """Search Victoria and Albert Museum collection."""
    return _vam_query(query, limit)


# Rijksmuseum API
RIJKS_QUERIES = [
    "rembrandt", "vermeer", "van gogh", "landscape",
    "portrait", "still life", "night watch", "golden age",
]


def _format_rijks_artwork(item):
    """Format Rijksmuseum art object data."""
    object_number = item.get("objectNumber", "")
    web_image = item.get("webImage") or {}
    header_image = item.get("headerImage") or {}
    links = item.get("links") or {}
    return make_artwork(
        "rijks", object_number, web_image.get("url"),
        title=item.get("title"),
        artist=item.get("principalOrFirstMaker"),
        thumbnail_url=header_image.get("url"),
        source_url=links.get("web") or f"https://www.rijksmuseum.nl/en/collection/{object_number}",
        description=item.get("longTitle"),
    )


def _rijks_query(query, limit, page=None):
    params = {
        "key": _require_key("rijks", "RIJKS_API_KEY"),
        "q": query,
        "ps": limit,
        "imgonly": "True",
    }
    if page:
        params["p"] = page
    data = _make_request(f"{RIJKS_BASE_URL}/collection", params, source="rijks")
    return _keep((_format_rijks_artwork(item) for item in data["artObjects"]), limit)


@_adapter("rijks")
def rijks_fetch(quota=20):
    """Rijksmuseum objects for a random query on a random page."""
    return _rijks_query(random.choice(RIJKS_QUERIES), quota, random.randint(1, 10))


@_adapter("rijks")
def rijks_search(query, limit=20):
    """Search Rijksmuseum collection."""
    return _rijks_query(query, limit)


# Harvard Art Museums API
HARVARD_QUERIES = [
    "painting", "sculpture", "photograph", "print",
    "asian", "european", "american", "ancient",
]


def _format_harvard_artwork(item):
    """Format Harvard Art Museums object data."""
    image_url = item.get("primaryimageurl")
    people = item.get("people") or []
    artist = next((p.get("name") for p in people if p.get("role") == "Artist"), None)
    if not artist and people:
        artist = people[0].get("name")

    object_id = item.get("objectid", item.get("id", ""))
    return make_artwork(
        "harvard", object_id, image_url,
        title=item.get("title"),
        artist=artist,
        year=item.get("dated"),
        medium=item.get("medium"),
        thumbnail_url=image_url.replace("full/full", "full/400,") if image_url else None,
        source_url=item.get("url") or f"https://harvardartmuseums.org/collections/object/{object_id}",
        department=item.get("department"),
        culture=item.get("culture"),
        classification=item.get("classification"),
        description=_strip_html(item.get("description")),
        dimensions=item.get("dimensions"),
        credit_line=item.get("creditline"),
    )


def _harvard_query(query, limit, page=None):
    params = {
        "apikey": _require_key("harvard", "HARVARD_API_KEY"),
        "q": query,
        "hasimage": 1,
        "size": limit,
    }
    if page:
        params["page"] = page
        params["sort"] = "random"
    data = _make_request(f"{HARVARD_BASE_URL}/object", params, source="harvard")
    return _keep((_format_harvard_artwork(item) for item in data["records"]), limit)


@_adapter("harvard")
def harvard_fetch(quota=20):
    """Random Harvard objects for a random query."""
    return _harvard_query(random.choice(HARVARD_QUERIES), quota, random.randint(1, 10))


@_adapter("harvard")
def harvard_search(query, limit=20):
    """Search Harvard Art Museums collection."""
    return _harvard_query(query, limit)


# Smithsonian API
SMITHSONIAN_QUERIES = [
    "painting art", "portrait", "landscape", "sculpture",
    "american art", "photograph", "asian art", "modern art",
]

SMITHSONIAN_UNITS = {
    "SAAM": "Smithsonian American Art Museum",
    "NPG": "National Portrait Gallery",
    "HMSG": "Hirshhorn Museum",
    "FSG": "Freer Gallery of Art",
    "ACM": "Anacostia Community Museum",
    "NMAAHC": "National Museum of African American History and Culture",
    "CHNDM": "Cooper Hewitt",
}


def _smithsonian_image_url(item, descriptive):
    """Media link when the record has one, else the hashed asset id."""
    media = (descriptive.get("online_media") or {}).get("media") or []
    if media and media[0].get("content"):
        return media[0]["content"]
    if item.get("hash"):
        return f"https://ids.si.edu/ids/deliveryService?id={item['hash']}"
    return None


def _freetext_first(freetext, key):
    entries = freetext.get(key) or []
    return entries[0].get("content") if entries else None


def _format_smithsonian_artwork(item):
    """Format Smithsonian Open Access row data."""
    content = item.get("content") or {}
    descriptive = content.get("descriptiveNonRepeating") or {}
    indexed = content.get("indexedStructured") or {}
    freetext = content.get("freetext") or {}

    unit_code = item.get("unitCode") or descriptive.get("unit_code") or ""
    record_id = item.get("id", "")
    return make_artwork(
        "smithsonian", record_id, _smithsonian_image_url(item, descriptive),
        title=item.get("title") or (descriptive.get("title") or {}).get("content"),
        artist=_first(indexed.get("name")) or _freetext_first(freetext, "name"),
        year=_first(indexed.get("date")),
        medium=_freetext_first(freetext, "physicalDescription"),
        source_url=descriptive.get("record_link") or f"https://www.si.edu/object/{record_id}",
        department=SMITHSONIAN_UNITS.get(unit_code, "Smithsonian"),
        culture=_first(indexed.get("culture")),
        classification=_first(indexed.get("object_type")),
        description=_strip_html(_freetext_first(freetext, "notes")),
        credit_line=_freetext_first(freetext, "creditLine"),
    )


def _smithsonian_query(query, limit, start=None):
    params = {
        "api_key": _require_key("smithsonian", "SMITHSONIAN_API_KEY"),
        "q": query,
        "rows": limit,
    }
    if start is not None:
        params["start"] = start
    data = _make_request(
        f"{SMITHSONIAN_BASE_URL}/category/art_design/search",
        params,
        source="smithsonian"
    )
    rows = data["response"].get("rows") or []
    return _keep((_format_smithsonian_artwork(item) for item in rows), limit)


@_adapter("smithsonian")
def smithsonian_fetch(quota=20):
    """Art and design records for a random query at a random offset."""
    return _smithsonian_query(random.choice(SMITHSONIAN_QUERIES), quota, random.randint(0, 99))


@_adapter("smithsonian")
def smithsonian_search(query, limit=20):
    """Search Smithsonian Open Access (art_design category only)."""
    return _smithsonian_query(query, limit)


# Europeana API
EUROPEANA_QUERIES = [
    "painting", "portrait", "landscape", "sculpture",
    "impressionism", "renaissance", "baroque", "photograph",
]


def _europeana_artist(item):
    if _first(item.get("dcCreator")):
        return _first(item["dcCreator"])
    by_language = item.get("dcCreatorLangAware") or {}
    for names in by_language.values():
        return _first(names)
    return None


def _format_europeana_artwork(item):
    """Format Europeana search item data."""
    record_id = item.get("id", "")
    image_url = _first(item.get("edmIsShownBy")) or _first(item.get("edmPreview"))
    return make_artwork(
        "europeana", record_id.replace("/", "-"), image_url,
        title=_first(item.get("title")),
        artist=_europeana_artist(item),
        year=_first(item.get("year")),
        medium=_first(item.get("dcFormat")) or _first(item.get("dcType")),
        thumbnail_url=_first(item.get("edmPreview")),
        source_url=_first(item.get("edmIsShownAt")) or f"https://www.europeana.eu/item{record_id}",
        department=_first(item.get("dataProvider")),
        culture=_first(item.get("country")),
        description=_strip_html(_first(item.get("dcDescription"))),
        dimensions=_first(item.get("dctermsExtent")),
    )


def _europeana_query(query, limit, start=None):
    params = {
        "wskey": _require_key("europeana", "EUROPEANA_API_KEY"),
        "query": query,
        "qf": ["TYPE:IMAGE", "MEDIA:true"],
        "rows": limit,
        "profile": "rich",
    }
    if start is not None:
        params["start"] = start
    data = _make_request(f"{EUROPEANA_BASE_URL}/search.json", params, source="europeana")
    return _keep((_format_europeana_artwork(item) for item in data.get("items") or []), limit)


@_adapter("europeana")
def europeana_fetch(quota=20):
    """Europeana image records for a random query at a random offset."""
    return _europeana_query(random.choice(EUROPEANA_QUERIES), quota, random.randint(1, 100))


@_adapter("europeana")
def europeana_search(query, limit=20):
    """Search Europeana collection (European cultural heritage)."""
    return _europeana_query(query, limit)


# NYPL Digital Collections API
NYPL_QUERIES = [
    "painting", "photograph", "portrait", "landscape",
    "poster", "illustration", "print", "drawing",
]


def _nypl_headers(token):
    return {"Authorization": f'Token token="{token}"'}


def _nypl_pick_image(links):
    """Prefer the web-sized derivative, then the reference one."""
    urls = [link.get("$") for link in links if link.get("$")]
    for marker in ("&t=w", "&t=r"):
        for url in urls:
            if marker in url:
                return url
    return urls[0] if urls else None


def _nypl_mods_fields(mods):
    """Artist, year, medium and note out of a MODS document."""
    fields = {}

    names = mods.get("name")
    name = names[0] if isinstance(names, list) and names else names
    if isinstance(name, dict):
        fields["artist"] = (name.get("namePart") or {}).get("$")

    fields["year"] = ((mods.get("originInfo") or {}).get("dateCreated") or {}).get("$")
    fields["medium"] = ((mods.get("physicalDescription") or {}).get("form") or {}).get("$")

    notes = mods.get("note")
    note = notes[0] if isinstance(notes, list) and notes else notes
    if isinstance(note, dict):
        fields["description"] = note.get("$")
    return fields


def _nypl_mods(uuid, headers):
    """MODS metadata for an item; {} when the lookup fails."""
    try:
        data = _make_request(f"{NYPL_BASE_URL}/mods/{uuid}", headers=headers, source="nypl")
        mods = data["nyplAPI"]["response"].get("mods") or {}
        return _nypl_mods_fields(mods)
    except (SourceUnavailable, KeyError, TypeError, AttributeError) as e:
        logger.debug("NYPL metadata for %s unavailable, using defaults: %r", uuid, e)
        return {}


def _nypl_get_artwork(result, headers):
    """Capture lookup is required for the image; MODS is best effort."""
    uuid = result.get("uuid")
    try:
        data = _make_request(f"{NYPL_BASE_URL}/items/{uuid}", headers=headers, source="nypl")
        captures = data["nyplAPI"]["response"].get("capture") or []
    except (SourceUnavailable, KeyError, TypeError) as e:
        logger.debug("NYPL item %s unavailable: %r", uuid, e)
        return None
    if not captures:
        return Rejected("nypl", str(uuid), MISSING_IMAGE)

    capture = captures[0]
    links = (capture.get("imageLinks") or {}).get("imageLink") or []
    if isinstance(links, dict):
        links = [links]
    image_url = _nypl_pick_image(links)
    if not image_url:
        return Rejected("nypl", str(uuid), MISSING_IMAGE)

    thumbnail = next((l.get("$") for l in links if "&t=t" in (l.get("$") or "")), None)
    return make_artwork(
        "nypl", uuid, image_url,
        title=result.get("title") or capture.get("title"),
        thumbnail_url=thumbnail,
        source_url=f"https://digitalcollections.nypl.org/items/{uuid}",
        **_nypl_mods(uuid, headers)
    )


@_adapter("nypl")
def nypl_fetch(quota=20):
    """Public-domain NYPL items, each resolved through its capture record."""
    headers = _nypl_headers(_require_key("nypl", "NYPL_API_TOKEN"))
    params = {
        "q": random.choice(NYPL_QUERIES),
        "publicDomainOnly": "true",
        "per_page": quota,
        "page": random.randint(1, 10),
    }
    data = _make_request(f"{NYPL_BASE_URL}/items/search", params, headers=headers, source="nypl")
    results = data["nyplAPI"]["response"].get("result") or []
    if isinstance(results, dict):
        results = [results]
    candidates = _lookup_all(lambda r: _nypl_get_artwork(r, headers), results[:quota])
    return _keep(candidates, quota)


# Source registry
FAST = "fast"
SLOW = "slow"


@dataclass(frozen=True)
class Source:
    """One museum: its adapter functions plus how long we wait for it."""
    tag: str
    name: str
    fetch: Callable
    search: Optional[Callable] = None
    credential: Optional[str] = None
    tier: str = FAST
    deadline_ms: Optional[int] = None

    @property
    def configured(self):
        """True unless the source needs a key that is not set."""
        return not self.credential or bool(config.api_key(self.credential))

    @property
    def timeout_ms(self):
        if self.deadline_ms is not None:
            return self.deadline_ms
        return config.FAST_DEADLINE_MS if self.tier == FAST else config.SLOW_DEADLINE_MS


# Fast: keyless, one request. Slow: keyed or several requests per call.
SOURCES = [
    Source("artic", "Art Institute of Chicago", aic_fetch, aic_search),
    Source("cleveland", "Cleveland Museum of Art", cleveland_fetch, cleveland_search),
    Source("vam", "Victoria and Albert Museum", vam_fetch, vam_search),
    Source("met", "Metropolitan Museum of Art", met_fetch, met_search, tier=SLOW),
    Source("rijks", "Rijksmuseum", rijks_fetch, rijks_search,
           credential="RIJKS_API_KEY", tier=SLOW),
    Source("harvard", "Harvard Art Museums", harvard_fetch, harvard_search,
           credential="HARVARD_API_KEY", tier=SLOW),
    Source("smithsonian", "Smithsonian Institution", smithsonian_fetch, smithsonian_search,
           credential="SMITHSONIAN_API_KEY", tier=SLOW),
    Source("europeana", "Europeana", europeana_fetch, europeana_search,
           credential="EUROPEANA_API_KEY", tier=SLOW),
    Source("nypl", "New York Public Library", nypl_fetch,
           credential="NYPL_API_TOKEN", tier=SLOW),
]

SOURCES_BY_TAG = {source.tag: source for source in SOURCES}
