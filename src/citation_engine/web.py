"""Small JSON API over the formatter, the citation renderer and the exporter."""
import logging
import os
from typing import Any, Dict, List, Optional

from flask import Flask, abort, jsonify, request, send_file

from .binder import InlineMarkBinder
from .config import Config
from .document import DocumentTree
from .export import export_bibliography
from .formatting import CITATION_FORMATS, format_full, format_short, is_citation_format
from .models import Source
from .source_catalog import SourceCatalog, normalize_source_rows

logger = logging.getLogger(__name__)


def _json_body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        abort(400, description="Expected a JSON object")
    return data


def _citation_format(data: Dict[str, Any]) -> str:
    fmt = data.get("format") or Config.DEFAULT_CITATION_FORMAT
    if not isinstance(fmt, str) or not is_citation_format(fmt):
        abort(400, description=f"Unknown citation format: {fmt}")
    return fmt


def _sources(data: Dict[str, Any]) -> List[Source]:
    rows = data.get("sources")
    if rows is None:
        return []
    if not isinstance(rows, list):
        abort(400, description="'sources' must be a list")
    return normalize_source_rows(rows)


def create_app(config: Optional[Dict[str, Any]] = None) -> Flask:
    app = Flask(__name__)
    app.config.update(
        EXPORT_FOLDER=Config.EXPORT_FOLDER,
        EXPORT_FILENAME=Config.EXPORT_FILENAME,
    )
    if config:
        app.config.update(config)

    @app.errorhandler(400)
    def bad_request(e):
        app.logger.warning(f"Bad request: {e.description}")
        return jsonify({"error": e.description}), 400

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"error": "Not found"}), 404

    @app.route("/api/citation-formats", methods=["GET"])
    def citation_formats():
        formats = [dict(id=key, **info) for key, info in CITATION_FORMATS.items()]
        return jsonify({"formats": formats, "default": Config.DEFAULT_CITATION_FORMAT})

    @app.route("/api/citations/format", methods=["POST"])
    def format_citation():
        """Short and full citation for one source."""
        data = _json_body()
        source = data.get("source")
        if not isinstance(source, dict):
            abort(400, description="'source' must be an object")
        fmt = _citation_format(data)
        return jsonify({
            "format": fmt,
            "short": format_short(source, fmt),
            "full": format_full(source),
        })

    @app.route("/api/citations/render", methods=["POST"])
    def render_citations():
        """Resolve every citation mark in a document against the given sources."""
        data = _json_body()
        if "content" not in data:
            abort(400, description="'content' is required")
        catalog = SourceCatalog(str(data.get("document_id") or ""))
        catalog.replace_snapshot(_sources(data))
        binder = InlineMarkBinder(catalog, _citation_format(data))
        rendered = binder.render_document(DocumentTree(data["content"]))
        return jsonify({"citations": [
            {"source_id": r.source_id, "text": r.text, "tooltip": r.tooltip, "state": r.state}
            for r in rendered
        ]})

    @app.route("/api/bibliography", methods=["POST"])
    def bibliography():
        """Word document with the full citations of the given sources."""
        data = _json_body()
        sources = _sources(data)
        if not sources:
            abort(400, description="No usable sources given")
        path = os.path.join(app.config["EXPORT_FOLDER"], app.config["EXPORT_FILENAME"])
        path = export_bibliography(
            sources,
            path,
            title=data.get("title") or "References",
            citation_format=_citation_format(data),
        )
        return send_file(os.path.abspath(path), as_attachment=True,
                         download_name=app.config["EXPORT_FILENAME"])

    @app.route("/health", methods=["GET"])
    def health():
        return "ok", 200

    return app
