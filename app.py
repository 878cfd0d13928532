"""
Artwork discovery API - serves a shuffled stream of public-domain artworks
gathered from museum open-access APIs.
"""
import logging

from flask import Flask, request, jsonify

import config
import museum_apis as api
import aggregator

logger = logging.getLogger(__name__)

app = Flask(__name__)
app.json.sort_keys = False


def _parse_count(name, default):
    """Positive integer query parameter, capped at MAX_COUNT.

    Returns (value, error message).
    """
    raw = request.args.get(name, "")
    if not raw.strip():
        return min(default, config.MAX_COUNT), None
    try:
        value = int(raw)
    except ValueError:
        return None, f"'{name}' must be an integer"
    if value < 1:
        return None, f"'{name}' must be at least 1"
    return min(value, config.MAX_COUNT), None


def _parse_ids(raw):
    return {part.strip() for part in raw.split(",") if part.strip()}


@app.route('/api/artworks')
def api_artworks():
    """Initial batch, or more artworks excluding the ids the client has seen."""
    count, error = _parse_count('count', config.DEFAULT_COUNT)
    if error:
        return jsonify({"error": error}), 400

    existing_ids = request.args.get('existingIds')
    try:
        if existing_ids:
            artworks = aggregator.fetch_more_artworks(_parse_ids(existing_ids), count)
        else:
            artworks = aggregator.fetch_artworks(count)
    except Exception:
        logger.exception("Error fetching artworks")
        return jsonify({"error": "Failed to fetch artworks"}), 500

    return jsonify({"artworks": [artwork.to_dict() for artwork in artworks]})


@app.route('/api/search')
def api_search():
    """Search one museum or all of them."""
    query = request.args.get('q', '').strip()
    if not query:
        return jsonify({"error": "Query parameter 'q' is required"}), 400

    source = request.args.get('source') or None
    if source and source not in api.SOURCES_BY_TAG:
        return jsonify({"error": f"Unknown source '{source}'"}), 400

    limit, error = _parse_count('limit', 20)
    if error:
        return jsonify({"error": error}), 400

    try:
        artworks = aggregator.search_all(query, source, limit)
    except Exception:
        logger.exception("Error searching artworks")
        return jsonify({"error": "Search failed"}), 500

    return jsonify({
        "query": query,
        "artworks": [artwork.to_dict() for artwork in artworks],
    })


@app.route('/api/sources')
def api_sources():
    """List museum sources and whether their credentials are configured."""
    return jsonify({"sources": [
        {
            "tag": source.tag,
            "name": source.name,
            "tier": source.tier,
            "configured": source.configured,
            "searchable": source.search is not None,
            "deadlineMs": source.timeout_ms,
        }
        for source in api.SOURCES
    ]})


if __name__ == '__main__':
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    print("\n  Artwork Discovery")
    print(f"  Starting server at http://127.0.0.1:{config.PORT}")
    print("  Press Ctrl+C to stop\n")
    app.run(debug=False, port=config.PORT)
