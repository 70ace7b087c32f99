"""
Модуль: `utils/image_proxy.py`.
Назначение: Загрузка изображений с разрешённых хостов облачного хранилища
(обход CORS-ограничений браузера) и построение проксированных URL.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from urllib.parse import urlencode, urlsplit

import requests
from flask import current_app

IMAGE_PROXY_PATH = "/api/image-proxy"


class ProxyError(Exception):
    """Ошибка проксирования; `status` – HTTP-код ответа клиенту."""

    def __init__(self, message: str, status: int = 400):
        super().__init__(message)
        self.message = message
        self.status = status


@dataclass
class UpstreamImage:
    body: bytes
    headers: dict = field(default_factory=dict)


def allowed_hosts() -> set[str]:
    return set(current_app.config.get("IMAGE_PROXY_ALLOWED_HOSTS", ()))


def parse_upstream_url(source: str, hosts: set[str]) -> str:
    """Проверяет URL источника и возвращает его нормализованную строку."""
    try:
        parsed = urlsplit(source)
    except ValueError as exc:
        raise ProxyError("Invalid src URL.") from exc

    if not parsed.scheme or not parsed.netloc:
        raise ProxyError("Invalid src URL.")

    if parsed.scheme.lower() not in {"http", "https"}:
        raise ProxyError("Only http(s) URLs are supported.")

    if (parsed.hostname or "") not in hosts:
        raise ProxyError("Host not allowed.")

    return parsed.geturl()


def fetch_upstream(url: str, method: str = "GET") -> UpstreamImage:
    """Запрашивает изображение у хранилища; редиректы `requests` обрабатывает сам."""
    timeout = int(current_app.config.get("IMAGE_PROXY_TIMEOUT", 10))
    try:
        response = requests.request(method, url, timeout=timeout)
        response.raise_for_status()
    except requests.HTTPError as exc:
        status = exc.response.status_code if exc.response is not None else 502
        raise ProxyError(f"Upstream fetch failed with status {status}.", status) from exc
    except requests.RequestException as exc:
        raise ProxyError(f"Proxy error: {exc}", 500) from exc

    headers = {
        "Content-Type": response.headers.get("Content-Type") or "application/octet-stream",
        "Cache-Control": response.headers.get("Cache-Control") or "public, max-age=3600",
    }
    etag = response.headers.get("ETag")
    if etag:
        headers["ETag"] = etag
    # Тело уже распаковано requests, длину сжатого ответа не передаём
    content_length = response.headers.get("Content-Length")
    if content_length and not response.headers.get("Content-Encoding"):
        headers["Content-Length"] = content_length

    body = b"" if method == "HEAD" else response.content
    return UpstreamImage(body=body, headers=headers)


def fetch_image_bytes(url: str) -> bytes:
    """Скачивает изображение по URL, если его хост в белом списке."""
    return fetch_upstream(parse_upstream_url(url, allowed_hosts())).body


def should_proxy_storage_url(url: str) -> bool:
    if not url or not url.lower().startswith(("http://", "https://")):
        return False
    try:
        return (urlsplit(url).hostname or "") in allowed_hosts()
    except ValueError:
        return False


def to_storage_proxy_url(url: str) -> str:
    """Переписывает URL облачного хранилища на локальный прокси, прочие не трогает."""
    if not should_proxy_storage_url(url):
        return url
    return f"{IMAGE_PROXY_PATH}?{urlencode({'src': url})}"
