import json
from unittest.mock import MagicMock

import pytest

from ytdl_bridge.core.errors import OutputLimitError, ProcessLaunchError, YtdlItemError
from ytdl_bridge.models.schemas import InvocationOptions, SubtitleOptions
from ytdl_bridge.services.ytdl import YtdlBinary, YtdlService

URLS = ["https://videos.example/1", "https://videos.example/2"]


def record(video_id, **extra):
    return json.dumps({"id": video_id, "duration": 125, "format": "18 - 640x360 (medium)", **extra})


@pytest.mark.asyncio
async def test_download_returns_records_in_request_order(fake_ytdl, tmp_path):
    fake_ytdl.scenario([{"stdout": record("one")}, {"stdout": record("two")}])
    on_item = MagicMock()
    on_complete = MagicMock()

    outcomes = await fake_ytdl.service().download(
        URLS, options=InvocationOptions(cwd=str(tmp_path)), on_item=on_item, on_complete=on_complete
    )

    assert [o.url for o in outcomes] == URLS
    assert [o.data["id"] for o in outcomes] == ["one", "two"]
    assert all(o.data.path == str(tmp_path) for o in outcomes)
    assert outcomes[0].data.duration == "2:05"

    assert on_item.call_count == 2
    assert on_item.call_args_list[0].args[0] is None
    assert on_item.call_args_list[0].args[2] == URLS[0]
    on_complete.assert_called_once_with(None, outcomes)


@pytest.mark.asyncio
async def test_download_argv(fake_ytdl):
    fake_ytdl.scenario([{"stdout": record("one")}])

    await fake_ytdl.service(ffmpeg_path="/opt/ffmpeg").download(URLS[0], ["--no-playlist"])

    (argv,) = fake_ytdl.invocations
    assert argv == [
        "-i", "--print-json", "-f", "best", "--ffmpeg-location", "/opt/ffmpeg",
        "--no-playlist", URLS[0],
    ]


@pytest.mark.asyncio
async def test_caller_format_replaces_default(fake_ytdl):
    await fake_ytdl.service().download(URLS[0], ["--format=worst"])

    (argv,) = fake_ytdl.invocations
    assert "--format=worst" in argv
    assert "best" not in argv


@pytest.mark.asyncio
async def test_youtube_urls_are_canonicalized_but_outcomes_keep_request_url(fake_ytdl):
    url = "https://www.youtube.com/watch?v=dQw4w9WgXcQ&t=42"
    fake_ytdl.scenario([{"stdout": record("dQw4w9WgXcQ")}])

    outcomes = await fake_ytdl.service().get_info([url])

    (argv,) = fake_ytdl.invocations
    assert argv[-1] == "http://www.youtube.com/watch?v=dQw4w9WgXcQ"
    assert outcomes[0].url == url


@pytest.mark.asyncio
async def test_get_info_uses_dump_json(fake_ytdl):
    fake_ytdl.scenario([{"stdout": record("one")}])

    outcomes = await fake_ytdl.service(ffmpeg_path="/opt/ffmpeg").get_info(URLS[:1])

    (argv,) = fake_ytdl.invocations
    assert argv[:5] == ["-i", "--dump-json", "--no-warnings", "-f", "best"]
    assert "--ffmpeg-location" not in argv
    assert outcomes[0].data.resolution() == "640x360 (medium)"


@pytest.mark.asyncio
async def test_non_finite_duration_does_not_abort_the_batch(fake_ytdl):
    fake_ytdl.scenario([
        {"stdout": '{"id": "one", "duration": 1e400}'},
        {"stdout": '{"id": "two", "duration": 5}'},
    ])
    on_item = MagicMock()
    on_complete = MagicMock()

    outcomes = await fake_ytdl.service().download(URLS, on_item=on_item, on_complete=on_complete)

    assert [o.url for o in outcomes] == URLS
    assert outcomes[0].data.duration == float("inf")
    assert outcomes[1].data.duration == "5"
    assert on_item.call_count == 2
    on_complete.assert_called_once_with(None, outcomes)


@pytest.mark.asyncio
async def test_warning_lines_never_reach_callbacks(fake_ytdl):
    fake_ytdl.scenario([{"stderr": "WARNING: unable to extract view count"}])
    on_item = MagicMock()

    outcomes = await fake_ytdl.service().download(URLS, on_item=on_item)

    assert outcomes == []
    on_item.assert_not_called()


@pytest.mark.asyncio
async def test_error_line_is_attributed_to_current_url(fake_ytdl):
    fake_ytdl.scenario([
        {"stderr": "ERROR: Video unavailable"},
        {"stdout": record("two")},
    ])
    on_item = MagicMock()

    outcomes = await fake_ytdl.service().download(URLS, on_item=on_item)

    failure, success = outcomes
    assert failure.url == URLS[0]
    assert isinstance(failure.error, YtdlItemError)
    assert str(failure.error) == "Video unavailable"
    assert success.url == URLS[1]
    assert success.data["id"] == "two"
    assert on_item.call_count == 2


@pytest.mark.asyncio
async def test_missing_subtitles_retries_once_without_subtitle_args(fake_ytdl):
    # The warning is printed on every run; only the first one may trigger a retry
    fake_ytdl.scenario([
        {"stderr": "WARNING: video doesn't have subtitles"},
        {"stdout": record("one")},
    ])
    args = ["--write-sub", "--srt-lang", "en", "--no-playlist"]
    on_complete = MagicMock()

    outcomes = await fake_ytdl.service().download(URLS[:1], args, on_complete=on_complete)

    first, second = fake_ytdl.invocations
    assert "--write-sub" in first
    assert "--write-sub" not in second
    assert "--srt-lang" not in second
    assert "en" not in second
    assert "--no-playlist" in second
    assert args == ["--write-sub", "--srt-lang", "en", "--no-playlist"]

    assert len(outcomes) == 1
    assert outcomes[0].data["id"] == "one"
    on_complete.assert_called_once_with(None, outcomes)


@pytest.mark.asyncio
async def test_record_before_missing_subtitles_is_reported_again_by_the_retry(fake_ytdl):
    # The first run already delivered a record when the trigger arrives
    fake_ytdl.scenario([
        {"stdout": record("one")},
        {"stderr": "WARNING: video doesn't have subtitles"},
    ])
    on_item = MagicMock()
    on_complete = MagicMock()

    outcomes = await fake_ytdl.service().download(
        URLS[:1], ["--write-sub"], on_item=on_item, on_complete=on_complete
    )

    assert len(fake_ytdl.invocations) == 2
    assert on_item.call_count == 2
    assert [c.args[2] for c in on_item.call_args_list] == [URLS[0], URLS[0]]
    assert all(c.args[0] is None for c in on_item.call_args_list)
    assert len(outcomes) == 1
    on_complete.assert_called_once_with(None, outcomes)


@pytest.mark.asyncio
async def test_get_subs_collects_written_files(fake_ytdl):
    fake_ytdl.scenario([
        {"stderr": "[info] Writing video subtitles to: /tmp/a.srt"},
        {"stderr": "[info] Writing video subtitles to: /tmp/b.srt"},
    ])

    files = await fake_ytdl.service().get_subs(URLS[0], SubtitleOptions(lang="en", all_subs=True))

    assert files == ["/tmp/a.srt", "/tmp/b.srt"]
    (argv,) = fake_ytdl.invocations
    assert argv == [
        "-i", "--skip-download", "--write-sub", "--all-subs", "--sub-lang=en", "--no-warnings", URLS[0],
    ]


@pytest.mark.asyncio
async def test_get_subs_reads_stdout_too(fake_ytdl):
    fake_ytdl.scenario([
        {"stdout": "[youtube] abc: Downloading webpage"},
        {"stdout": "[info] Writing video subtitles to: /tmp/c.en.vtt"},
    ])

    files = await fake_ytdl.service().get_subs(URLS[0], SubtitleOptions(auto=True, suppress_warnings=False))

    assert files == ["/tmp/c.en.vtt"]
    (argv,) = fake_ytdl.invocations
    assert "--write-auto-sub" in argv
    assert "--no-warnings" not in argv


@pytest.mark.asyncio
async def test_get_subs_raises_reported_error(fake_ytdl):
    fake_ytdl.scenario([{"stderr": "ERROR: Private video"}])

    with pytest.raises(YtdlItemError, match="Private video"):
        await fake_ytdl.service().get_subs(URLS[0])


@pytest.mark.asyncio
async def test_get_subs_error_keeps_files_written_by_the_call(fake_ytdl):
    fake_ytdl.scenario([
        {"stderr": "[info] Writing video subtitles to: /tmp/a.srt"},
        {"stderr": "ERROR: Private video"},
        {"stderr": "[info] Writing video subtitles to: /tmp/b.srt"},
    ])

    with pytest.raises(YtdlItemError, match="Private video") as excinfo:
        await fake_ytdl.service().get_subs(URLS)

    assert excinfo.value.files == ["/tmp/a.srt", "/tmp/b.srt"]
    assert excinfo.value.url == ""


@pytest.mark.asyncio
async def test_get_extractors(fake_ytdl):
    fake_ytdl.scenario([{"stdout": "youtube"}, {"stdout": "youtube:playlist"}, {"stdout": "vimeo"}])

    extractors = await fake_ytdl.service().get_extractors()

    assert extractors == ["youtube", "youtube:playlist", "vimeo"]
    assert fake_ytdl.invocations == [["-i", "--list-extractors"]]


@pytest.mark.asyncio
async def test_get_extractor_descriptions(fake_ytdl):
    await fake_ytdl.service().get_extractors(descriptions=True)
    assert fake_ytdl.invocations == [["-i", "--extractor-descriptions"]]


@pytest.mark.asyncio
async def test_get_formats(fake_ytdl, log_messages):
    fake_ytdl.scenario([{"stdout": record("one", formats=[
        {"format_id": "18", "ext": "mp4", "format": "18 - 640x360 (medium)"},
        {"format_id": "140", "ext": "m4a", "format": "140 - audio only"},
    ])}])

    formats = await fake_ytdl.service().get_formats(URLS[0])

    assert [(f.id, f.itag, f.filetype, f.resolution) for f in formats] == [
        ("one", "18", "mp4", "640x360"),
        ("one", "140", "m4a", "audio only"),
    ]
    assert any("get_formats()" in m for m in log_messages)


@pytest.mark.asyncio
async def test_execute_passes_caller_args_only(fake_ytdl):
    fake_ytdl.scenario([{"stdout": "2024.01.01"}])

    lines = await fake_ytdl.service().execute(None, ["--version"])

    assert lines == ["2024.01.01"]
    assert fake_ytdl.invocations == [["-i", "--version"]]


@pytest.mark.asyncio
async def test_output_limit_is_fatal(fake_ytdl):
    fake_ytdl.scenario([{"stdout": record("one", description="x" * 4096)}])
    on_complete = MagicMock()
    on_item = MagicMock()

    await fake_ytdl.service().download(
        URLS[:1], options=InvocationOptions(max_buffer_size=512), on_item=on_item, on_complete=on_complete
    )

    on_item.assert_not_called()
    err, items = on_complete.call_args.args
    assert isinstance(err, OutputLimitError)
    assert err.limit == 512
    assert items == []


@pytest.mark.asyncio
async def test_output_limit_raises_without_completion_callback(fake_ytdl):
    fake_ytdl.scenario([{"stdout": record("one", description="x" * 4096)}])

    with pytest.raises(OutputLimitError):
        await fake_ytdl.service().download(URLS[:1], options=InvocationOptions(max_buffer_size=512))


@pytest.mark.asyncio
async def test_launch_error_goes_to_completion_callback(tmp_path):
    service = YtdlService(binary=YtdlBinary(path=str(tmp_path / "missing-ytdl")), ffmpeg_path=None)
    on_item = MagicMock()
    on_complete = MagicMock()

    outcomes = await service.download(URLS, on_item=on_item, on_complete=on_complete)

    assert outcomes == []
    on_item.assert_not_called()
    err, items = on_complete.call_args.args
    assert isinstance(err, ProcessLaunchError)
    assert items == []


@pytest.mark.asyncio
async def test_launch_error_raises_without_completion_callback(tmp_path):
    service = YtdlService(binary=YtdlBinary(path=str(tmp_path / "missing-ytdl")), ffmpeg_path=None)

    with pytest.raises(ProcessLaunchError):
        await service.get_info(URLS)


@pytest.mark.asyncio
async def test_nonzero_exit_still_completes(fake_ytdl):
    fake_ytdl.scenario([{"stdout": record("one")}], exit_code=1)
    on_complete = MagicMock()

    outcomes = await fake_ytdl.service().download(URLS, on_complete=on_complete)

    assert len(outcomes) == 1
    on_complete.assert_called_once_with(None, outcomes)
