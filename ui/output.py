"""
Output writers -- JSON export and Clash YAML proxy lists.
"""
from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import yaml

from speedtester.grading import Thresholds, is_good, is_usable, split_results
from speedtester.result import Result

logger = logging.getLogger(__name__)


def create_result_json(results: List[Result], thresholds: Optional[Thresholds] = None) -> Dict[str, Any]:
    """Build a JSON-serialisable dict of a whole run."""
    entries = []
    for r in results:
        entry = r.to_dict()
        if thresholds is not None:
            entry["usable"] = is_usable(r, thresholds)
            entry["good"] = is_good(r, thresholds)
        entries.append(entry)

    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "count": len(entries),
        "results": entries,
    }


def _atomic_write(filepath: str, text: str) -> None:
    dir_path = os.path.dirname(filepath) or "."
    tmp = os.path.join(dir_path, f".tmp_{os.path.basename(filepath)}")

    try:
        with open(tmp, "w", encoding="utf-8") as fh:
            fh.write(text)
        os.replace(tmp, filepath)
    except (IOError, OSError) as exc:
        # Clean up partial temp file
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise IOError(f"Failed to write {filepath}: {exc}") from exc


def save_json(result: Dict[str, Any], filepath: str) -> None:
    """Write *result* to *filepath* atomically (write-tmp then rename)."""
    _atomic_write(filepath, json.dumps(result, indent=2, ensure_ascii=False))


def save_proxies(results: List[Result], filepath: str) -> bool:
    """Write the raw proxy configs of *results* as a Clash ``proxies`` document.

    Returns False (and writes nothing) when *results* is empty.
    """
    if not results:
        logger.warning("%s: no proxies to save", filepath)
        return False

    document = {"proxies": [r.proxy_config for r in results]}
    _atomic_write(
        filepath,
        yaml.safe_dump(document, allow_unicode=True, sort_keys=False),
    )
    return True


def save_results(
    results: List[Result],
    thresholds: Thresholds,
    output_path: str = "",
    good_output_path: str = "",
) -> List[str]:
    """Save good proxies and the remaining usable ones to separate files.

    Without a good-output path every usable proxy goes to *output_path*.
    Returns the paths actually written.
    """
    good, usable = split_results(results, thresholds)
    written: List[str] = []

    if good_output_path:
        path = os.path.abspath(good_output_path)
        if save_proxies(good, path):
            written.append(path)
    else:
        usable = good + usable

    if output_path:
        path = os.path.abspath(output_path)
        if save_proxies(usable, path):
            written.append(path)

    return written
