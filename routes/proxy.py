"""
Программа: «Artwork Studio» – веб-приложение для подбора помпонов по цветам CAD-макетов ковров.
Модуль: routes/proxy.py – прокси изображений облачного хранилища.
"""

from flask import Response, current_app, request

from utils.image_proxy import ProxyError, allowed_hosts, fetch_upstream, parse_upstream_url
from utils.rate_limit import rate_limited


def _apply_proxy_headers(response: Response) -> Response:
    response.headers["Access-Control-Allow-Origin"] = request.headers.get("Origin") or "*"
    response.headers["Access-Control-Allow-Methods"] = "GET,HEAD,OPTIONS"
    response.headers["Vary"] = "Origin"
    return response


def _text_response(message: str, status: int) -> Response:
    return _apply_proxy_headers(Response(message, status=status, mimetype="text/plain"))


def _resolve_source() -> str:
    return (request.args.get("src") or request.args.get("url") or "").strip()


def register_routes(app):
    @app.route("/api/image-proxy", methods=["GET", "HEAD", "OPTIONS", "POST", "PUT", "PATCH", "DELETE"])
    def image_proxy():
        """Отдаёт изображение с разрешённого хоста с CORS-заголовками."""
        if request.method == "OPTIONS":
            return _text_response("", 204)

        if request.method not in {"GET", "HEAD"}:
            response = _text_response("Method not allowed.", 405)
            response.headers["Allow"] = "GET,HEAD,OPTIONS"
            return response

        if rate_limited("image_proxy", limit=600, window_seconds=10 * 60):
            return _text_response("Too many requests.", 429)

        source = _resolve_source()
        if not source:
            return _text_response("Missing src query param.", 400)

        try:
            upstream_url = parse_upstream_url(source, allowed_hosts())
            upstream = fetch_upstream(upstream_url, method=request.method)
        except ProxyError as exc:
            if exc.status >= 500:
                current_app.logger.warning("Image proxy failed for %s: %s", source, exc.message)
            return _text_response(exc.message, exc.status)

        response = Response(upstream.body, status=200)
        for name, value in upstream.headers.items():
            response.headers[name] = value
        return _apply_proxy_headers(response)
