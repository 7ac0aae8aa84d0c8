import asyncio

import pytest

from conftest import FakeSession
from srcset_widths import (
    ContextDataset,
    MeasurementError,
    SrcsetConfig,
    SrcsetError,
    ValidationError,
    WidthSelection,
    main,
    render_recommendation,
    resolve_viewport_range,
    run_pipeline,
    write_outputs,
)


class SlowSession(FakeSession):
    async def wait(self, delay_ms):
        await asyncio.sleep(delay_ms / 1000.0)


def make_config(contexts_csv, tmp_path, **overrides):
    values = dict(
        contexts_file=contexts_csv,
        url="https://example.com/",
        selector="main img",
        delay_ms=0,
        widths_number=2,
        variations_file=tmp_path / "variations.csv",
        dest_file=tmp_path / "srcset-widths.txt",
    )
    values.update(overrides)
    return SrcsetConfig(**values)


def test_pipeline_selects_and_writes(contexts_csv, tmp_path):
    session = FakeSession(width_for=lambda viewport: viewport / 2)
    config = make_config(contexts_csv, tmp_path)
    result = asyncio.run(run_pipeline(config, session_factory=lambda: session))

    assert result.viewport_range == (320, 400)
    assert len(result.profile) == 81
    assert [(b.ideal_width, b.views) for b in result.buckets] == [(200, 200), (320, 500), (540, 300)]
    assert result.selection.widths == (320, 540)
    assert result.written == [config.variations_file, config.dest_file]
    assert session.closed

    variations = config.variations_file.read_text(encoding="utf-8").splitlines()
    assert variations[0] == "viewport width (px);image width (px)"
    assert variations[1] == "320;160"
    assert variations[2] == "321;160.5"
    assert len(variations) == 82

    recommendation = config.dest_file.read_text(encoding="utf-8")
    assert "page           : https://example.com/" in recommendation
    assert "image selector : main img" in recommendation
    assert "widths in srcset: 320,540" in recommendation


def test_viewport_bounds_narrow_the_range(contexts_csv, tmp_path):
    session = FakeSession()
    config = make_config(contexts_csv, tmp_path, min_viewport=350, max_viewport=2000, widths_number=5)
    result = asyncio.run(run_pipeline(config, session_factory=lambda: session))
    assert result.viewport_range == (350, 400)
    assert session.resizes[0][0] == 350
    assert result.selection.widths == (200, 540)


def test_resolve_viewport_range_without_overlap(tmp_path):
    dataset = ContextDataset.load([["320", "1", "1"], ["400", "1", "1"]])
    config = SrcsetConfig(contexts_file=tmp_path / "c.csv", url="u", selector="s", min_viewport=500, verbose=True)
    with pytest.raises(ValidationError):
        resolve_viewport_range(dataset, config)


def test_measurement_failure_writes_nothing(contexts_csv, tmp_path):
    session = FakeSession(fail_at=350)
    config = make_config(contexts_csv, tmp_path)
    with pytest.raises(MeasurementError) as excinfo:
        asyncio.run(run_pipeline(config, session_factory=lambda: session))
    assert excinfo.value.stage == "profiling"
    assert session.closed
    assert not config.variations_file.exists()
    assert not config.dest_file.exists()


def test_bad_contexts_stop_before_browser(tmp_path):
    contexts = tmp_path / "contexts.csv"
    contexts.write_text("320,2,10\n360,3,-5\n", encoding="utf-8")
    session = FakeSession()
    config = make_config(contexts, tmp_path)
    with pytest.raises(ValidationError) as excinfo:
        asyncio.run(run_pipeline(config, session_factory=lambda: session))
    assert excinfo.value.stage == "contexts"
    assert not session.launched


def test_profiling_timeout(contexts_csv, tmp_path):
    session = SlowSession()
    config = make_config(contexts_csv, tmp_path, delay_ms=50, timeout=0.2)
    with pytest.raises(MeasurementError, match="did not finish"):
        asyncio.run(run_pipeline(config, session_factory=lambda: session))
    assert session.closed
    assert not config.dest_file.exists()


@pytest.mark.parametrize(
    "overrides",
    [
        dict(min_viewport=-1),
        dict(min_viewport=500, max_viewport=400),
        dict(delay_ms=-5),
        dict(widths_number=0),
        dict(timeout=0),
        dict(dest_file=None, verbose=False),
    ],
)
def test_invalid_config(contexts_csv, tmp_path, overrides):
    config = make_config(contexts_csv, tmp_path, **overrides)
    with pytest.raises(ValidationError) as excinfo:
        config.validate()
    assert excinfo.value.stage is None


def test_existing_output_is_not_overwritten(contexts_csv, tmp_path):
    dest = tmp_path / "srcset-widths.txt"
    dest.write_text("keep me", encoding="utf-8")
    session = FakeSession()
    config = make_config(contexts_csv, tmp_path, dest_file=dest)
    with pytest.raises(ValidationError, match="already exists") as excinfo:
        asyncio.run(run_pipeline(config, session_factory=lambda: session))
    assert excinfo.value.stage == "config"
    assert dest.read_text(encoding="utf-8") == "keep me"
    assert not session.launched


def test_verbose_prints_tables(contexts_csv, tmp_path, capsys):
    config = make_config(contexts_csv, tmp_path, variations_file=None, dest_file=None, verbose=True)
    result = asyncio.run(run_pipeline(config, session_factory=FakeSession))
    out = capsys.readouterr().out
    assert "Imported 3 lines of context" in out
    assert "viewport width" in out
    assert "ideal width" in out
    assert "Widths in srcset: 320, 540" in out
    assert result.written == []


def test_render_recommendation():
    text = render_recommendation("https://example.com/", "img.hero", WidthSelection(widths=(320, 640, 1280), waste=12.5))
    assert text.splitlines() == [
        "page           : https://example.com/",
        "image selector : img.hero",
        "widths in srcset: 320,640,1280",
    ]


def test_main_reports_validation_failure(contexts_csv, capsys):
    code = main(["-c", str(contexts_csv), "-u", "https://example.com/", "-s", "img"])
    assert code == 1
    err = capsys.readouterr().err
    assert "config failed" in err


def test_main_requires_url(contexts_csv):
    with pytest.raises(SystemExit) as excinfo:
        main(["-c", str(contexts_csv), "-s", "img"])
    assert excinfo.value.code == 2


class RacingSession(FakeSession):
    """Another process creates the destination file while profiling runs."""

    def __init__(self, dest_file):
        super().__init__()
        self.dest_file = dest_file

    async def open(self, url):
        await super().open(url)
        self.dest_file.write_text("written elsewhere", encoding="utf-8")


def test_destination_in_missing_directory_fails_before_profiling(contexts_csv, tmp_path):
    session = FakeSession()
    config = make_config(contexts_csv, tmp_path, dest_file=tmp_path / "nodir" / "srcset-widths.txt")
    with pytest.raises(ValidationError, match="missing or not writable") as excinfo:
        asyncio.run(run_pipeline(config, session_factory=lambda: session))
    assert excinfo.value.stage == "config"
    assert not session.launched
    assert not config.variations_file.exists()


def test_failed_second_write_removes_the_first(tmp_path):
    first = tmp_path / "variations.csv"
    second = tmp_path / "nodir" / "srcset-widths.txt"
    with pytest.raises(SrcsetError, match="cannot write"):
        write_outputs([(first, "a\n"), (second, "b\n")])
    assert not first.exists()
    assert not second.exists()


def test_output_created_during_profiling_is_not_overwritten(contexts_csv, tmp_path):
    config = make_config(contexts_csv, tmp_path)
    session = RacingSession(config.dest_file)
    with pytest.raises(ValidationError, match="already exists") as excinfo:
        asyncio.run(run_pipeline(config, session_factory=lambda: session))
    assert excinfo.value.stage == "output"
    assert config.dest_file.read_text(encoding="utf-8") == "written elsewhere"
    assert not config.variations_file.exists()


def test_main_reports_undecodable_contexts(tmp_path, capsys):
    contexts = tmp_path / "contexts.csv"
    contexts.write_bytes(b"320,2,\xff\n")
    code = main(["-c", str(contexts), "-u", "https://example.com/", "-s", "img", "-v"])
    assert code == 1
    assert "contexts failed" in capsys.readouterr().err
