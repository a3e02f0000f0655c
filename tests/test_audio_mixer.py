"""
Tests for pipeline/audio_mixer.py

ffmpeg itself is never run; subprocess.run is patched.
"""

import random
import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from pipeline.audio_mixer import (
    AudioMixError,
    FFmpegNotFoundError,
    build_mix_command,
    mix_with_background_music,
    mix_with_background_music_sync,
    pick_background_music,
)


@pytest.fixture
def music_dir(tmp_path) -> Path:
    directory = tmp_path / "music"
    directory.mkdir()
    (directory / "calm.mp3").write_bytes(b"calm")
    (directory / "piano.MP3").write_bytes(b"piano")
    (directory / "notes.txt").write_text("not music")
    return directory


def fake_ffmpeg(cmd, **kwargs):
    Path(cmd[-1]).write_bytes(b"mixed")
    return subprocess.CompletedProcess(cmd, 0, stdout="", stderr="")


class TestBuildMixCommand:
    def test_command(self):
        cmd = build_mix_command(Path("speech.mp3"), Path("music.mp3"), Path("out.mp3"))

        assert cmd[0] == "ffmpeg"
        assert cmd[cmd.index("-stream_loop") + 1] == "-1"
        filter_graph = cmd[cmd.index("-filter_complex") + 1]
        assert "volume=-18dB" in filter_graph
        assert "duration=first" in filter_graph
        assert cmd[-1] == "out.mp3"

    def test_custom_volume(self):
        cmd = build_mix_command(Path("s.mp3"), Path("m.mp3"), Path("o.mp3"), music_volume_db=-12.5)
        assert "volume=-12.5dB" in cmd[cmd.index("-filter_complex") + 1]


class TestPickBackgroundMusic:
    def test_only_mp3(self, music_dir):
        picks = {pick_background_music(music_dir, random.Random(seed)).name for seed in range(20)}
        assert picks <= {"calm.mp3", "piano.MP3"}

    def test_missing_or_empty(self, tmp_path):
        assert pick_background_music(tmp_path / "missing") is None
        assert pick_background_music(tmp_path) is None


class TestMix:
    @pytest.mark.asyncio
    async def test_no_music_dir_passthrough(self):
        assert await mix_with_background_music(b"speech", None) == b"speech"

    @pytest.mark.asyncio
    async def test_empty_music_dir_passthrough(self, tmp_path):
        assert await mix_with_background_music(b"speech", tmp_path) == b"speech"

    @pytest.mark.asyncio
    async def test_mixes_with_track(self, music_dir):
        with patch("pipeline.audio_mixer.subprocess.run", side_effect=fake_ffmpeg) as run:
            mixed = await mix_with_background_music(b"speech", music_dir)

        assert mixed == b"mixed"
        cmd = run.call_args.args[0]
        assert Path(cmd[cmd.index("-i", 3) + 1]).parent == music_dir

    def test_ffmpeg_missing(self, music_dir):
        with patch("pipeline.audio_mixer.subprocess.run", side_effect=FileNotFoundError):
            with pytest.raises(FFmpegNotFoundError):
                mix_with_background_music_sync(b"speech", music_dir / "calm.mp3")

    def test_ffmpeg_failure(self, music_dir):
        failed = subprocess.CompletedProcess([], 1, stdout="", stderr="Invalid data found")

        with patch("pipeline.audio_mixer.subprocess.run", return_value=failed):
            with pytest.raises(AudioMixError, match="Invalid data"):
                mix_with_background_music_sync(b"speech", music_dir / "calm.mp3")

    def test_ffmpeg_timeout(self, music_dir):
        with patch("pipeline.audio_mixer.subprocess.run", side_effect=subprocess.TimeoutExpired("ffmpeg", 120)):
            with pytest.raises(AudioMixError, match="timed out"):
                mix_with_background_music_sync(b"speech", music_dir / "calm.mp3")
