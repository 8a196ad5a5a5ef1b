"""Unit tests for ui.output -- JSON export and proxy list files."""

import json
import os
import tempfile
import unittest

import yaml

from speedtester.constants import MB
from speedtester.grading import Thresholds
from speedtester.result import Result
from speedtester.stats import LatencyStats
from ui.output import create_result_json, save_json, save_proxies, save_results


def make_result(name, download_speed, latency_ms=100.0):
    return Result(
        proxy_name=name,
        proxy_type="socks5",
        proxy_config={"name": name, "type": "socks5", "server": "10.0.0.1", "port": 1080},
        latency_ms=latency_ms,
        download_speed=download_speed,
        extra_url_connectivity=True,
    )


class TestCreateResultJson(unittest.TestCase):
    def test_basic_structure(self):
        r = create_result_json([make_result("a", 2 * MB)])
        self.assertIn("timestamp", r)
        self.assertEqual(r["count"], 1)
        entry = r["results"][0]
        self.assertEqual(entry["proxy_name"], "a")
        self.assertEqual(entry["download_speed"], 2 * MB)
        self.assertNotIn("usable", entry)

    def test_classification_flags(self):
        t = Thresholds()
        r = create_result_json([make_result("fast", 5 * MB), make_result("slow", 0.5 * MB)], t)
        flags = {e["proxy_name"]: (e["usable"], e["good"]) for e in r["results"]}
        self.assertEqual(flags, {"fast": (True, True), "slow": (True, False)})

    def test_extra_url_stats_serialised(self):
        result = Result(
            proxy_name="a", proxy_type="http",
            extra_url_stats={"https://x": LatencyStats(latency_ms=10.0, samples=[10.0])},
        )
        entry = create_result_json([result])["results"][0]
        self.assertEqual(entry["extra_url_stats"]["https://x"]["latency_ms"], 10.0)
        json.dumps(entry)

    def test_empty(self):
        r = create_result_json([])
        self.assertEqual(r["count"], 0)
        self.assertEqual(r["results"], [])


class TestSaveJson(unittest.TestCase):
    def test_roundtrip(self):
        data = {"key": "value", "number": 42}
        with tempfile.NamedTemporaryFile(mode="w", suffix=".json", delete=False) as f:
            path = f.name
        try:
            save_json(data, path)
            with open(path) as fh:
                loaded = json.load(fh)
            self.assertEqual(loaded, data)
        finally:
            os.unlink(path)

    def test_atomic_no_partial(self):
        with self.assertRaises(IOError):
            save_json({"a": 1}, "/nonexistent/dir/file.json")


class TestSaveProxies(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.dir = self._tmp.name

    def tearDown(self):
        self._tmp.cleanup()

    def test_writes_clash_document(self):
        path = os.path.join(self.dir, "out.yaml")
        self.assertTrue(save_proxies([make_result("a", MB), make_result("b", MB)], path))
        with open(path, encoding="utf-8") as fh:
            doc = yaml.safe_load(fh)
        self.assertEqual([p["name"] for p in doc["proxies"]], ["a", "b"])
        self.assertEqual(doc["proxies"][0]["port"], 1080)
        self.assertFalse(os.path.exists(os.path.join(self.dir, ".tmp_out.yaml")))

    def test_unicode_names(self):
        path = os.path.join(self.dir, "out.yaml")
        save_proxies([make_result("香港 01", MB)], path)
        with open(path, encoding="utf-8") as fh:
            self.assertIn("香港 01", fh.read())

    def test_empty_writes_nothing(self):
        path = os.path.join(self.dir, "out.yaml")
        self.assertFalse(save_proxies([], path))
        self.assertFalse(os.path.exists(path))


class TestSaveResults(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.dir = self._tmp.name
        self.results = [
            make_result("good", 5 * MB),
            make_result("usable", 0.5 * MB),
            make_result("bad", 0.0),
        ]

    def tearDown(self):
        self._tmp.cleanup()

    def _names(self, path):
        with open(path, encoding="utf-8") as fh:
            return [p["name"] for p in yaml.safe_load(fh)["proxies"]]

    def test_split_files(self):
        out = os.path.join(self.dir, "useable.yaml")
        good = os.path.join(self.dir, "good.yaml")
        written = save_results(self.results, Thresholds(), out, good)
        self.assertEqual(written, [good, out])
        self.assertEqual(self._names(good), ["good"])
        self.assertEqual(self._names(out), ["usable"])

    def test_single_file(self):
        out = os.path.join(self.dir, "useable.yaml")
        written = save_results(self.results, Thresholds(), out, "")
        self.assertEqual(written, [out])
        self.assertEqual(self._names(out), ["good", "usable"])

    def test_nothing_usable(self):
        out = os.path.join(self.dir, "useable.yaml")
        good = os.path.join(self.dir, "good.yaml")
        self.assertEqual(save_results([make_result("bad", 0.0)], Thresholds(), out, good), [])
        self.assertFalse(os.path.exists(out))


if __name__ == "__main__":
    unittest.main()
