"""Tests for discovery, skip decisions and the batch loop."""

import os
import shutil
import tempfile
import time
import unittest
from pathlib import Path

from compress_video.transcode import batch
from compress_video.transcode.batch import RunConfig, compress_one, compress_tree, iter_candidate_files, make_candidate
from tests.fakes import FakeProbe, FakeTranscoder


class _TreeTestCase(unittest.TestCase):

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp()).resolve()
        self.src_root = self.temp_dir / "a"
        self.dst_root = self.temp_dir / "b"
        self.src_root.mkdir()

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def touch(self, *parts) -> Path:
        path = self.src_root.joinpath(*parts)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"video")
        return path

    def config(self, **overrides) -> RunConfig:
        values = dict(extension="mkv", source=self.src_root, destination=self.dst_root)
        values.update(overrides)
        return RunConfig(**values)


class TestIterCandidateFiles(_TreeTestCase):

    def test_extension_filter_is_case_sensitive(self):
        self.touch("one.mkv")
        self.touch("two.MKV")
        self.touch("three.mp4")
        self.touch("notes.mkv.txt")

        found = [p.name for p in iter_candidate_files(self.src_root, "mkv")]

        self.assertEqual(found, ["one.mkv"])

    def test_recurses_in_sorted_order(self):
        self.touch("z.mkv")
        self.touch("b", "y.mkv")
        self.touch("a", "deep", "x.mkv")
        self.touch("a", "w.mkv")

        found = [p.relative_to(self.src_root).as_posix() for p in iter_candidate_files(self.src_root, "mkv")]

        self.assertEqual(found, ["z.mkv", "a/w.mkv", "a/deep/x.mkv", "b/y.mkv"])

    def test_is_lazy(self):
        self.touch("one.mkv")
        result = iter_candidate_files(self.src_root, "mkv")
        self.assertFalse(isinstance(result, list))
        self.assertEqual(next(result).name, "one.mkv")

    @unittest.skipIf(os.name == "nt", "symlinks need privileges on Windows")
    def test_symlinked_directories_are_not_followed(self):
        self.touch("real", "clip.mkv")
        os.symlink(self.src_root / "real", self.src_root / "link", target_is_directory=True)

        found = [p.relative_to(self.src_root).as_posix() for p in iter_candidate_files(self.src_root, "mkv")]

        self.assertEqual(found, ["real/clip.mkv"])

    def test_excluded_subtree_is_pruned(self):
        self.touch("keep.mkv")
        self.touch("out", "already.mkv")

        found = [p.name for p in iter_candidate_files(self.src_root, "mkv", exclude=self.src_root / "out")]

        self.assertEqual(found, ["keep.mkv"])


class TestMakeCandidate(_TreeTestCase):

    def test_destination_mirrors_nesting(self):
        src = self.touch("x", "y", "clip.mkv")

        candidate = make_candidate(src, self.config())

        self.assertEqual(candidate.relative_path, Path("x", "y", "clip.mkv"))
        self.assertEqual(candidate.destination_path, self.dst_root / "x" / "y" / "clip.mkv")
        self.assertEqual(candidate.destination_path.relative_to(self.dst_root),
                         src.relative_to(self.src_root))

    def test_trailing_separator_on_roots(self):
        src = self.touch("x", "clip.mkv")
        config = self.config(source=Path(str(self.src_root) + os.sep), destination=Path(str(self.dst_root) + os.sep))

        candidate = make_candidate(src, config)

        self.assertEqual(candidate.destination_path, self.dst_root / "x" / "clip.mkv")

    def test_default_bitrate(self):
        self.assertEqual(self.config().bitrate_kbps, 2000)


class TestCompressOne(_TreeTestCase):

    def setUp(self):
        super().setUp()
        self.probe = FakeProbe()
        self.transcoder = FakeTranscoder()

    def test_transcodes_into_mirrored_folder(self):
        src = self.touch("x", "y.mkv")
        self.assertFalse((self.dst_root / "x").exists())

        src_out, dst, status = compress_one(src, self.config(), self.probe, self.transcoder)

        self.assertEqual(status, "OK")
        self.assertEqual(dst, self.dst_root / "x" / "y.mkv")
        self.assertTrue((self.dst_root / "x").is_dir())
        self.assertEqual(self.transcoder.calls, [(src, self.dst_root / "x" / "y.mkv", 2000)])
        self.assertEqual(self.transcoder.parent_existed, [True])

    def test_existing_destination_skips_without_probing(self):
        src = self.touch("x", "y.mkv")
        existing = self.dst_root / "x" / "y.mkv"
        existing.parent.mkdir(parents=True)
        existing.write_bytes(b"old")

        _, _, status = compress_one(src, self.config(), self.probe, self.transcoder)

        self.assertTrue(status.startswith("SKIP"))
        self.assertEqual(self.probe.codec_calls, [])
        self.assertEqual(self.transcoder.calls, [])
        self.assertEqual(existing.read_bytes(), b"old")

    def test_existing_directory_at_destination_is_not_a_skip(self):
        src = self.touch("y.mkv")
        (self.dst_root / "y.mkv").mkdir(parents=True)
        probe = FakeProbe(default="hevc")

        compress_one(src, self.config(), probe, self.transcoder)

        self.assertEqual(probe.codec_calls, [src])

    def test_hevc_source_is_skipped(self):
        for codec in ("hevc", "HEVC\r", "hevc\r\n"):
            with self.subTest(codec=codec):
                src = self.touch("clip.mkv")
                probe = FakeProbe(default=codec)

                _, _, status = compress_one(src, self.config(), probe, self.transcoder)

                self.assertEqual(status, "SKIP (already HEVC)")
                self.assertEqual(probe.stream_calls, [])
        self.assertEqual(self.transcoder.calls, [])

    def test_probe_failure_is_reported(self):
        src = self.touch("broken.mkv")
        probe = FakeProbe(default=None)

        _, dst, status = compress_one(src, self.config(), probe, self.transcoder)

        self.assertIsNone(dst)
        self.assertTrue(status.startswith("FAIL"))
        self.assertEqual(self.transcoder.calls, [])

    def test_transcoder_failure_is_reported(self):
        src = self.touch("bad.mkv")
        transcoder = FakeTranscoder(fail_on=("bad.mkv",))

        _, dst, status = compress_one(src, self.config(), self.probe, transcoder)

        self.assertIsNone(dst)
        self.assertEqual(status, "FAIL (ffmpeg code 1)")

    def test_dry_run_touches_nothing(self):
        src = self.touch("x", "y.mkv")

        _, dst, status = compress_one(src, self.config(dry_run=True), self.probe, self.transcoder)

        self.assertEqual(status, "DRY-RUN")
        self.assertEqual(dst, self.dst_root / "x" / "y.mkv")
        self.assertFalse(self.dst_root.exists())
        self.assertEqual(self.transcoder.calls, [])

    def test_custom_bitrate_is_passed_through(self):
        src = self.touch("clip.mkv")

        compress_one(src, self.config(bitrate_kbps=4500), self.probe, self.transcoder)

        self.assertEqual(self.transcoder.calls[0][2], 4500)


class TestCompressTree(_TreeTestCase):

    def test_failures_do_not_stop_the_batch(self):
        self.touch("a.mkv")
        self.touch("b.mkv")
        self.touch("c.mkv")
        self.touch("d.mkv")
        existing = self.dst_root / "d.mkv"
        existing.parent.mkdir(parents=True)
        existing.write_bytes(b"old")
        probe = FakeProbe(codecs={"c.mkv": "hevc"})
        transcoder = FakeTranscoder(fail_on=("a.mkv",))

        results = compress_tree(self.config(), probe, transcoder)

        statuses = {src.name: status for src, _, status in results}
        self.assertEqual(statuses, {
            "a.mkv": "FAIL (ffmpeg code 1)",
            "b.mkv": "OK",
            "c.mkv": "SKIP (already HEVC)",
            "d.mkv": "SKIP (destination exists)",
        })
        self.assertEqual([c[0].name for c in transcoder.calls], ["a.mkv", "b.mkv"])

    def test_destination_inside_source_is_not_rescanned(self):
        self.touch("clip.mkv")
        config = self.config(destination=self.src_root / "converted")
        transcoder = FakeTranscoder()

        results = compress_tree(config, FakeProbe(), transcoder)

        self.assertEqual(len(results), 1)
        self.assertTrue((self.src_root / "converted" / "clip.mkv").is_file())

    def test_summarize_counts(self):
        results = [
            (Path("a"), Path("A"), "OK"),
            (Path("b"), None, "SKIP (already HEVC)"),
            (Path("c"), None, "FAIL (ffmpeg code 1)"),
            (Path("d"), Path("D"), "DRY-RUN"),
            (Path("e"), Path("E"), "OK"),
        ]

        counts = batch.summarize(results, time.time())

        self.assertEqual(counts, {"ok": 2, "skip": 1, "fail": 1, "dry_run": 1})


if __name__ == "__main__":
    unittest.main()
