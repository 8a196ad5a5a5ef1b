"""Probe and orchestration tests against a local speed-test server."""

import unittest

from speedserver import CountingDial, SpeedServer, direct_handle, failing_dial

from speedtester.auxiliary import AuxiliaryTester
from speedtester.config import TestConfig
from speedtester.latency import LatencyTester, ping_url
from speedtester.tester import SpeedTester
from speedtester.throughput import ThroughputTester
from speedtester.transfer import (
    Direction,
    ZeroStream,
    download_url,
    probe_transfer,
    upload_url,
)


class ServerTestCase(unittest.IsolatedAsyncioTestCase):
    fail = ()
    bodies = None
    delays = None
    stall = None

    async def asyncSetUp(self):
        self.server = await SpeedServer(
            fail=self.fail, bodies=self.bodies, delays=self.delays, stall=self.stall
        ).start()
        self.dial = CountingDial()
        self.handle = direct_handle(dial=self.dial)

    async def asyncTearDown(self):
        await self.server.close()

    def config(self, **overrides):
        values = dict(
            server_url=self.server.url,
            download_size=40_000,
            upload_size=20_000,
            timeout=5.0,
            concurrent=4,
            probe_interval=0,
        )
        values.update(overrides)
        return TestConfig(**values)


class TestZeroStream(unittest.IsolatedAsyncioTestCase):
    async def test_exact_size(self):
        stream = ZeroStream(100_000, chunk_size=4096)
        total = 0
        async for chunk in stream:
            self.assertEqual(chunk, bytes(len(chunk)))
            total += len(chunk)
        self.assertEqual(total, 100_000)
        self.assertEqual(stream.written, 100_000)

    async def test_zero_size(self):
        stream = ZeroStream(0)
        chunks = [c async for c in stream]
        self.assertEqual(chunks, [])
        self.assertEqual(stream.written, 0)


class TestTransferProbe(ServerTestCase):
    async def test_download(self):
        outcome = await probe_transfer(
            self.handle, download_url(self.server.url, 12_345), Direction.DOWNLOAD, 12_345, 5.0
        )
        self.assertIsNotNone(outcome)
        self.assertEqual(outcome.bytes_transferred, 12_345)
        self.assertGreater(outcome.duration_ms, 0)
        self.assertGreater(outcome.speed, 0)

    async def test_upload(self):
        outcome = await probe_transfer(
            self.handle, upload_url(self.server.url), Direction.UPLOAD, 30_000, 5.0
        )
        self.assertIsNotNone(outcome)
        self.assertEqual(outcome.bytes_transferred, 30_000)
        self.assertEqual(self.server.upload_sizes, [30_000])

    async def test_connection_refused_is_failure(self):
        outcome = await probe_transfer(
            self.handle, "http://127.0.0.1:1/__down?bytes=10", Direction.DOWNLOAD, 10, 2.0
        )
        self.assertIsNone(outcome)


class TestTransferProbeBadStatus(ServerTestCase):
    fail = ("/__down", "/__up")

    async def test_download_non_200(self):
        outcome = await probe_transfer(
            self.handle, download_url(self.server.url, 100), Direction.DOWNLOAD, 100, 5.0
        )
        self.assertIsNone(outcome)

    async def test_upload_non_200(self):
        outcome = await probe_transfer(
            self.handle, upload_url(self.server.url), Direction.UPLOAD, 100, 5.0
        )
        self.assertIsNone(outcome)


class TestLatencyTester(ServerTestCase):
    async def test_all_succeed(self):
        tester = LatencyTester(probe_count=6, interval=0)
        stats = await tester.test(self.handle, ping_url(self.server.url), 5.0)
        self.assertEqual(stats.packet_loss, 0.0)
        self.assertEqual(len(stats.samples), 6)
        self.assertGreater(stats.latency_ms, 0)
        self.assertEqual(self.server.hits["/__down"], 6)
        self.assertEqual(self.server.download_sizes, [0] * 6)

    async def test_unreachable_host(self):
        tester = LatencyTester(probe_count=6, interval=0)
        stats = await tester.test(self.handle, "http://127.0.0.1:1/__down?bytes=0", 2.0)
        self.assertEqual(stats.packet_loss, 100.0)
        self.assertEqual(stats.latency_ms, 0.0)
        self.assertEqual(stats.jitter_ms, 0.0)

    async def test_read_body_counts_bytes(self):
        from speedtester.transfer import open_session

        tester = LatencyTester(probe_count=3, interval=0)
        async with open_session(self.handle, 5.0) as session:
            pings = await tester.sample(session, self.server.aux_url("a"), read_body=True)
        self.assertEqual(len(pings), 3)
        self.assertTrue(all(p.success for p in pings))
        self.assertTrue(all(p.bytes_read == 1024 for p in pings))
        self.assertTrue(all(p.elapsed_ms >= p.latency_ms for p in pings))


class TestLatencyTesterFailures(ServerTestCase):
    fail = ("/__down",)

    async def test_non_200_counts_as_loss(self):
        tester = LatencyTester(probe_count=6, interval=0)
        stats = await tester.test(self.handle, ping_url(self.server.url), 5.0)
        self.assertEqual(stats.packet_loss, 100.0)
        self.assertTrue(stats.unreachable)
        self.assertEqual(self.server.hits["/__down"], 6)


class TestAuxiliaryTester(ServerTestCase):
    fail = ("/aux/b",)
    bodies = {"a": 2048, "c": 4096}

    def _tester(self, urls, download=""):
        return AuxiliaryTester(
            urls, download, latency_tester=LatencyTester(interval=0), timeout=5.0
        )

    async def test_short_circuit_on_unreachable(self):
        urls = [self.server.aux_url(n) for n in ("a", "b", "c")]
        result = await self._tester(urls, download_url(self.server.url, 1000)).test(self.handle)

        self.assertFalse(result.connectivity)
        self.assertEqual(self.server.hits["/aux/a"], 6)
        self.assertEqual(self.server.hits["/aux/b"], 6)
        self.assertEqual(self.server.hits["/aux/c"], 0)
        self.assertEqual(self.server.hits["/__down"], 0)
        self.assertEqual(result.open_speed, 0.0)
        self.assertEqual(result.download_speed, 0.0)
        self.assertEqual(list(result.url_stats), urls[:2])

    async def test_all_reachable(self):
        urls = [self.server.aux_url("a"), self.server.aux_url("c")]
        result = await self._tester(urls).test(self.handle)
        self.assertTrue(result.connectivity)
        self.assertGreater(result.open_speed, 0)
        self.assertEqual(result.download_speed, 0.0)

    async def test_empty_list(self):
        result = await self._tester([]).test(self.handle)
        self.assertTrue(result.connectivity)
        self.assertEqual(result.open_speed, 0.0)
        self.assertEqual(self.dial.calls, 0)

    async def test_extra_download(self):
        result = await self._tester([], download_url(self.server.url, 50_000)).test(self.handle)
        self.assertTrue(result.connectivity)
        self.assertGreater(result.download_speed, 0)

    async def test_extra_download_failure_is_zero(self):
        result = await self._tester([], "http://127.0.0.1:1/file").test(self.handle)
        self.assertTrue(result.connectivity)
        self.assertEqual(result.download_speed, 0.0)


class TestThroughputTester(ServerTestCase):
    async def test_chunks_and_phases(self):
        tester = ThroughputTester(self.server.url, concurrent=4, timeout=5.0)
        down, up = await tester.test(self.handle, 40_003, 20_001)

        self.assertEqual(self.server.download_sizes, [10_000] * 4)
        self.assertEqual(sorted(self.server.upload_sizes), [5_000] * 4)
        self.assertEqual(down.size, 40_000)
        self.assertEqual(up.size, 20_000)
        self.assertEqual(down.successes, 4)
        self.assertEqual(up.successes, 4)
        self.assertGreater(down.speed, 0)
        # one connector per probe
        self.assertEqual(self.dial.calls, 8)


class TestThroughputTesterFailures(ServerTestCase):
    fail = ("/__up",)

    async def test_failed_direction_is_zero(self):
        tester = ThroughputTester(self.server.url, concurrent=2, timeout=5.0)
        down, up = await tester.test(self.handle, 2_000, 2_000)
        self.assertEqual(down.successes, 2)
        self.assertEqual(up.successes, 0)
        self.assertEqual(up.speed, 0.0)
        self.assertEqual(up.size, 0)
        self.assertEqual(up.time_ms, 0.0)
        self.assertEqual(up.attempts, 2)

class TestThroughputTesterBarrier(ServerTestCase):
    delays = {"/__down": 0.05}

    async def test_uploads_wait_for_every_download(self):
        tester = ThroughputTester(self.server.url, concurrent=4, timeout=5.0)
        down, up = await tester.test(self.handle, 4_000, 4_000)
        self.assertEqual((down.successes, up.successes), (4, 4))

        events = self.server.events
        last_down_end = max(i for i, e in enumerate(events) if e == ("end", "/__down"))
        first_up_start = min(i for i, e in enumerate(events) if e == ("start", "/__up"))
        self.assertLess(last_down_end, first_up_start)


class TestThroughputTesterStuckChunk(ServerTestCase):
    stall = {"/__down": 1}

    async def test_stuck_chunk_times_out_alone(self):
        tester = ThroughputTester(self.server.url, concurrent=4, timeout=0.5)
        down, up = await tester.test(self.handle, 4_000, 4_000)

        self.assertEqual(down.attempts, 4)
        self.assertEqual(down.successes, 3)
        self.assertEqual(down.size, 3_000)
        self.assertGreater(down.speed, 0)
        self.assertAlmostEqual(down.speed, down.size / (down.time_ms / 1000))
        # the upload phase still ran in full
        self.assertEqual(up.successes, 4)



class TestSpeedTester(ServerTestCase):
    bodies = {"a": 512}

    async def test_full_run(self):
        tester = SpeedTester(self.config(extra_connect_urls=[self.server.aux_url("a")]))
        result = await tester.test_proxy(self.handle)

        self.assertEqual(result.proxy_name, "local")
        self.assertEqual(result.proxy_type, "direct")
        self.assertEqual(result.packet_loss, 0.0)
        self.assertTrue(result.extra_url_connectivity)
        self.assertGreater(result.extra_url_open_speed, 0)
        self.assertEqual(result.download_size, 40_000)
        self.assertEqual(result.upload_size, 20_000)
        self.assertGreater(result.download_speed, 0)
        self.assertGreater(result.upload_speed, 0)
        self.assertEqual(result.proxy_config, {"name": "local", "type": "direct"})

    async def test_fast_mode_only_latency(self):
        tester = SpeedTester(self.config(fast_mode=True, extra_connect_urls=[self.server.aux_url("a")]))
        result = await tester.test_proxy(self.handle)
        self.assertTrue(result.fast_mode)
        self.assertGreater(result.latency_ms, 0)
        self.assertEqual(self.server.hits["/aux/a"], 0)
        self.assertEqual(self.server.hits["/__up"], 0)
        self.assertEqual(self.dial.calls, 1)

    async def test_test_proxies_callbacks(self):
        tester = SpeedTester(self.config(fast_mode=True))
        started, results = [], []
        handles = [direct_handle("one"), direct_handle("two")]
        await tester.test_proxies(handles, on_result=results.append, on_start=started.append)
        self.assertEqual(started, ["one", "two"])
        self.assertEqual([r.proxy_name for r in results], ["one", "two"])

    async def test_undialable_proxy_does_not_stop_the_run(self):
        tester = SpeedTester(self.config(fast_mode=True))
        results, errors = [], []
        handles = [direct_handle("broken", dial=failing_dial), direct_handle("good")]
        await tester.test_proxies(
            handles,
            on_result=results.append,
            on_error=lambda handle, exc: errors.append((handle.name, exc)),
        )
        self.assertEqual([r.proxy_name for r in results], ["good"])
        self.assertEqual(len(errors), 1)
        self.assertEqual(errors[0][0], "broken")
        self.assertIsInstance(errors[0][1], OSError)

    async def test_undialable_proxy_without_error_callback(self):
        tester = SpeedTester(self.config(fast_mode=True))
        results = []
        with self.assertLogs("speedtester.tester", level="WARNING"):
            await tester.test_proxies(
                [direct_handle("broken", dial=failing_dial), direct_handle("good")],
                on_result=results.append,
            )
        self.assertEqual([r.proxy_name for r in results], ["good"])


class TestSpeedTesterPrimaryLoss(ServerTestCase):
    fail = ("/__down",)

    async def test_total_loss_stops_everything(self):
        tester = SpeedTester(self.config(
            extra_connect_urls=[self.server.aux_url("a")],
            extra_download_url=self.server.aux_url("big"),
        ))
        result = await tester.test_proxy(self.handle)

        self.assertEqual(result.packet_loss, 100.0)
        self.assertFalse(result.extra_url_connectivity)
        self.assertEqual(result.download_speed, 0.0)
        self.assertEqual(result.upload_speed, 0.0)
        self.assertEqual(result.extra_url_stats, {})
        # only the latency session was ever dialled
        self.assertEqual(self.dial.calls, 1)
        self.assertEqual(self.server.hits["/__down"], 6)
        self.assertEqual(self.server.hits["/aux/a"], 0)
        self.assertEqual(self.server.hits["/aux/big"], 0)
        self.assertEqual(self.server.hits["/__up"], 0)


class TestSpeedTesterConnectivityLoss(ServerTestCase):
    fail = ("/aux/b",)

    async def test_unreachable_extra_url_stops_throughput(self):
        urls = [self.server.aux_url(n) for n in ("a", "b", "c")]
        tester = SpeedTester(self.config(extra_connect_urls=urls))
        result = await tester.test_proxy(self.handle)

        self.assertFalse(result.extra_url_connectivity)
        self.assertEqual(self.server.hits["/aux/c"], 0)
        self.assertEqual(self.server.hits["/__up"], 0)
        # latency probes only, no throughput chunks
        self.assertEqual(self.server.download_sizes, [0] * 6)
        self.assertEqual(result.download_speed, 0.0)


if __name__ == "__main__":
    unittest.main()
