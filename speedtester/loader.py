"""
Discovery and loading of Clash configuration documents.

Documents may be local YAML files, directories of them, or http(s) URLs.
Proxies come from the ``proxies`` list and from ``proxy-providers``.
Entries that cannot be tested are logged and skipped; structural problems
with a document raise :class:`ProxyConfigError`.
"""
from __future__ import annotations

import asyncio
import fnmatch
import logging
import os
import re
from dataclasses import replace
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

import aiohttp
import yaml

from .constants import COMMON_HEADERS
from .exceptions import ProxyConfigError, UnsupportedProxyError
from .proxy import ProxyHandle, resolve_proxy

logger = logging.getLogger(__name__)

_HTTP_RE = re.compile(r"^https?://", re.IGNORECASE)
_RESERVED_PROVIDER = "default"
_FETCH_TIMEOUT = 30.0


def is_url(path: str) -> bool:
    return bool(_HTTP_RE.match(path))


def source_name(path: str) -> str:
    """File name without extension, for files and URLs alike."""
    if is_url(path):
        path = urlparse(path).path
    return os.path.splitext(os.path.basename(path.rstrip("/")))[0]


# ---------------------------------------------------------------------------
# Path discovery
# ---------------------------------------------------------------------------

def _is_yaml(path: str) -> bool:
    return os.path.splitext(path)[1].lower() in (".yaml", ".yml")


def _is_skipped(path: str, skip_patterns: List[str]) -> bool:
    normalized = path.replace(os.sep, "/")
    for pattern in skip_patterns:
        if fnmatch.fnmatch(normalized, pattern) or normalized.startswith(pattern):
            return True
    return False


def find_config_paths(config_paths: str, skip_paths: str = "") -> List[str]:
    """Expand a comma-separated list of files, directories and URLs.

    Directories are walked recursively for ``.yaml`` / ``.yml`` files.
    Skip patterns are made absolute and match by glob or by prefix.
    """
    skip_patterns = [
        os.path.abspath(p.strip()).replace(os.sep, "/")
        for p in skip_paths.split(",")
        if p.strip()
    ]

    found: List[str] = []
    for raw in config_paths.split(","):
        path = raw.strip()
        if not path:
            continue
        if is_url(path):
            found.append(path)
            continue

        abs_path = os.path.abspath(path)
        if not os.path.exists(abs_path):
            raise ProxyConfigError(f"config path does not exist: {abs_path}")

        if os.path.isfile(abs_path):
            if _is_yaml(abs_path) and not _is_skipped(abs_path, skip_patterns):
                found.append(abs_path)
            continue

        for root, dirs, files in os.walk(abs_path):
            dirs.sort()
            for name in sorted(files):
                full = os.path.join(root, name)
                if _is_yaml(full) and not _is_skipped(full, skip_patterns):
                    found.append(full)

    return found


# ---------------------------------------------------------------------------
# Document reading
# ---------------------------------------------------------------------------

async def _fetch(url: str, session: Optional[aiohttp.ClientSession]) -> str:
    if session is None:
        timeout = aiohttp.ClientTimeout(total=_FETCH_TIMEOUT)
        async with aiohttp.ClientSession(headers=COMMON_HEADERS, timeout=timeout) as own:
            return await _fetch(url, own)

    try:
        async with session.get(url) as resp:
            resp.raise_for_status()
            return await resp.text()
    except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as exc:
        raise ProxyConfigError(f"failed to fetch {url}: {exc}") from exc


async def read_document(path: str, session: Optional[aiohttp.ClientSession] = None) -> Dict[str, Any]:
    """Read and parse one YAML document from a file or URL."""
    if is_url(path):
        text = await _fetch(path, session)
    else:
        try:
            with open(path, encoding="utf-8") as fh:
                text = fh.read()
        except OSError as exc:
            raise ProxyConfigError(f"failed to read {path}: {exc}") from exc

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ProxyConfigError(f"invalid YAML in {path}: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ProxyConfigError(f"{path}: top level must be a mapping")
    return data


# ---------------------------------------------------------------------------
# Proxy extraction
# ---------------------------------------------------------------------------

def _resolve_entries(
    entries: Any,
    source: str,
    prefix: str = "",
    strict_names: bool = True,
) -> Dict[str, ProxyHandle]:
    if entries is None:
        return {}
    if not isinstance(entries, list):
        raise ProxyConfigError(f"{source}: 'proxies' must be a list")

    handles: Dict[str, ProxyHandle] = {}
    seen = set()
    for index, entry in enumerate(entries):
        name = entry.get("name") if isinstance(entry, dict) else None
        if name is not None:
            if strict_names and str(name) in seen:
                raise ProxyConfigError(f"{source}: duplicate proxy name {name!r}")
            seen.add(str(name))
        try:
            handle = resolve_proxy(entry, source=source)
        except UnsupportedProxyError as exc:
            logger.debug("skipping proxy %d in %s: %s", index, source, exc)
            continue
        except ProxyConfigError as exc:
            logger.warning("skipping proxy %d in %s: %s", index, source, exc)
            continue
        if prefix:
            handle = replace(handle, name=f"{prefix}{handle.name}")
        handles.setdefault(handle.name, handle)
    return handles


async def _provider_proxies(
    name: str,
    provider: Any,
    source: str,
    base_dir: str,
    session: Optional[aiohttp.ClientSession],
) -> Dict[str, ProxyHandle]:
    if name == _RESERVED_PROVIDER:
        raise ProxyConfigError(f"can not define a provider called {_RESERVED_PROVIDER!r}")
    if not isinstance(provider, dict):
        raise ProxyConfigError(f"provider {name!r} must be a mapping")

    kind = provider.get("type")
    if kind == "http" and provider.get("url"):
        location = str(provider["url"])
    elif kind == "file" and provider.get("path"):
        location = str(provider["path"])
        if not os.path.isabs(location):
            location = os.path.join(base_dir, location)
    else:
        raise ProxyConfigError(f"provider {name!r}: unsupported or incomplete definition")

    document = await read_document(location, session)
    return _resolve_entries(
        document.get("proxies"),
        source,
        prefix=f"[{name}] ",
        strict_names=False,
    )


def _name_filter(filter_regex: str, block_keywords: str):
    pattern = re.compile(filter_regex or ".+")
    blocked = [k.strip().lower() for k in block_keywords.split("|") if k.strip()]

    def _keep(name: str) -> bool:
        if not pattern.search(name):
            return False
        lowered = name.lower()
        return not any(k in lowered for k in blocked)

    return _keep


async def load_proxies(
    path: str,
    filter_regex: str = ".+",
    block_keywords: str = "",
    session: Optional[aiohttp.ClientSession] = None,
) -> Dict[str, ProxyHandle]:
    """Load every testable proxy of one document, keyed by name.

    Args:
        path: local file or http(s) URL.
        filter_regex: only names matching this regular expression are kept.
        block_keywords: ``|``-separated substrings; matching names are dropped
            (case-insensitive).
        session: optional session used for URL documents and http providers.

    Raises:
        ProxyConfigError: the document or one of its providers is invalid.
    """
    source = source_name(path)
    document = await read_document(path, session)

    proxies = _resolve_entries(document.get("proxies"), source)

    providers = document.get("proxy-providers") or {}
    if not isinstance(providers, dict):
        raise ProxyConfigError(f"{path}: 'proxy-providers' must be a mapping")
    base_dir = "" if is_url(path) else os.path.dirname(path)
    for name, provider in providers.items():
        for key, handle in (await _provider_proxies(str(name), provider, source, base_dir, session)).items():
            proxies.setdefault(key, handle)

    keep = _name_filter(filter_regex, block_keywords)
    filtered = {name: handle for name, handle in proxies.items() if keep(name)}
    logger.info("%s: %d testable proxies (%d after filtering)", source, len(proxies), len(filtered))
    return filtered
