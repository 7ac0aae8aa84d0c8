#!/usr/bin/env python3
"""
Responsive Image Widths - srcset width recommendation script
Measures how wide an image renders across viewport widths using Playwright,
weights the result with real visitor contexts and picks the widths to publish.
"""

import argparse
import asyncio
import csv
import math
import os
import re
import sys
from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

try:
    from playwright.async_api import async_playwright, Error as PlaywrightError
except ImportError:
    print("ERROR: playwright not installed. Run: pip install playwright && playwright install chromium")
    raise SystemExit(1)


DEFAULT_DELAY_MS = 500
DEFAULT_VIEWPORT_HEIGHT = 2000
DEFAULT_WIDTHS_NUMBER = 5
GOTO_TIMEOUT_MS = 60000

# Charge per missing pixel when a bucket is larger than every published width.
UNDERSHOOT_PENALTY = 2.0

CONTEXT_COLUMNS = ["viewport", "density", "views"]
CSV_DELIMITERS = ",;\t"
VARIATIONS_HEADER = "viewport width (px);image width (px)"

MEASURE_SCRIPT = """(selector) => {
    const nodes = document.querySelectorAll(selector);
    if (nodes.length !== 1) {
        return {count: nodes.length, width: null};
    }
    return {count: 1, width: nodes[0].getBoundingClientRect().width};
}"""


class SrcsetError(Exception):
    def __init__(self, message: str, stage: Optional[str] = None):
        super().__init__(message)
        self.stage = stage


class ValidationError(SrcsetError):
    """Malformed input data or invalid parameter."""


class MeasurementError(SrcsetError):
    """Browser, page or selector failure while profiling."""


class DomainError(SrcsetError):
    """A viewport outside the measured profile was looked up."""


def parse_int(value: Any, label: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{label} must be an integer, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if value.is_integer():
            return int(value)
        raise ValidationError(f"{label} must be an integer, got {value!r}")
    text = str(value).strip()
    if not re.fullmatch(r"[+-]?\d+", text):
        raise ValidationError(f"{label} must be an integer, got {value!r}")
    return int(text)


def parse_real(value: Any, label: str) -> float:
    if isinstance(value, bool):
        raise ValidationError(f"{label} must be a number, got {value!r}")
    try:
        number = float(str(value).strip()) if isinstance(value, str) else float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{label} must be a number, got {value!r}") from None
    if not math.isfinite(number):
        raise ValidationError(f"{label} must be finite, got {value!r}")
    return number


@dataclass(frozen=True)
class ContextSample:
    viewport_width: int
    density: float
    views: int


class ContextDataset:
    """Weighted visitor contexts: viewport width, pixel density and page views."""

    def __init__(self, samples: Sequence[ContextSample]):
        if not samples:
            raise ValidationError("no context samples")
        self.samples: Tuple[ContextSample, ...] = tuple(samples)

    @classmethod
    def load(cls, rows: Iterable[Sequence[Any]]) -> "ContextDataset":
        samples = []
        for line, row in enumerate(rows, start=1):
            if len(row) != len(CONTEXT_COLUMNS):
                raise ValidationError(f"row {line}: expected {len(CONTEXT_COLUMNS)} values, got {len(row)}")
            viewport_raw, density_raw, views_raw = row
            viewport = parse_int(viewport_raw, f"row {line}: viewport")
            density = parse_real(density_raw, f"row {line}: density")
            views = parse_int(views_raw, f"row {line}: views")
            if viewport <= 0:
                raise ValidationError(f"row {line}: viewport must be > 0, got {viewport}")
            if density <= 0:
                raise ValidationError(f"row {line}: density must be > 0, got {density}")
            if views < 0:
                raise ValidationError(f"row {line}: views must be >= 0, got {views}")
            samples.append(ContextSample(viewport_width=viewport, density=density, views=views))

        dataset = cls(samples)
        if dataset.total_views() <= 0:
            raise ValidationError("context views sum to zero")
        return dataset

    def __len__(self) -> int:
        return len(self.samples)

    def min_viewport(self) -> int:
        return min(s.viewport_width for s in self.samples)

    def max_viewport(self) -> int:
        return max(s.viewport_width for s in self.samples)

    def total_views(self) -> int:
        return sum(s.views for s in self.samples)

    def in_range(self, lo: int, hi: int) -> Iterator[ContextSample]:
        for sample in self.samples:
            if lo <= sample.viewport_width <= hi:
                yield sample


def has_letters(row: Sequence[str]) -> bool:
    return any(re.search(r"[a-zA-Z]", cell or "") for cell in row)


def read_context_rows(path: Path) -> List[List[str]]:
    try:
        content = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ValidationError(f"cannot read contexts file {path}: {exc}") from exc

    try:
        dialect = csv.Sniffer().sniff(content[:4096], delimiters=CSV_DELIMITERS)
        delimiter = dialect.delimiter
    except csv.Error:
        delimiter = ","

    rows = []
    for row in csv.reader(content.splitlines(), delimiter=delimiter):
        while row and not row[-1].strip():
            row = row[:-1]
        if row:
            rows.append(row)
    if rows and has_letters(rows[0]):
        rows = rows[1:]
    return rows


@dataclass(frozen=True)
class RenderProfile:
    """Rendered element width for every integer viewport in [min_viewport, max_viewport]."""

    min_viewport: int
    max_viewport: int
    widths: Tuple[float, ...]

    def __post_init__(self):
        expected = self.max_viewport - self.min_viewport + 1
        if expected < 1 or len(self.widths) != expected:
            raise MeasurementError(
                f"profile for {self.min_viewport}-{self.max_viewport}px needs {max(expected, 0)} widths, "
                f"got {len(self.widths)}"
            )

    def __contains__(self, viewport: int) -> bool:
        return self.min_viewport <= viewport <= self.max_viewport

    def __getitem__(self, viewport: int) -> float:
        if viewport not in self:
            raise DomainError(
                f"viewport {viewport}px is outside the measured range "
                f"{self.min_viewport}-{self.max_viewport}px"
            )
        return self.widths[viewport - self.min_viewport]

    def __len__(self) -> int:
        return len(self.widths)

    def items(self) -> Iterator[Tuple[int, float]]:
        for offset, width in enumerate(self.widths):
            yield self.min_viewport + offset, width


class RenderingSession:
    """One page in a headless browser that can be resized and measured.

    Used as an async context manager: entering launches the browser, leaving
    always closes it.
    """

    async def launch(self) -> None:
        raise NotImplementedError

    async def open(self, url: str) -> None:
        raise NotImplementedError

    async def resize(self, width: int, height: int) -> None:
        raise NotImplementedError

    async def wait(self, delay_ms: int) -> None:
        if delay_ms > 0:
            await asyncio.sleep(delay_ms / 1000.0)

    async def measure(self, selector: str) -> float:
        raise NotImplementedError

    async def close(self) -> None:
        raise NotImplementedError

    async def __aenter__(self) -> "RenderingSession":
        try:
            await self.launch()
        except BaseException:
            await self.close()
            raise
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


class PlaywrightSession(RenderingSession):
    def __init__(self, headless: bool = True, goto_timeout_ms: int = GOTO_TIMEOUT_MS):
        self.headless = headless
        self.goto_timeout_ms = goto_timeout_ms
        self._playwright = None
        self._browser = None
        self._context = None
        self._page = None

    async def launch(self) -> None:
        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(headless=self.headless)
        self._context = await self._browser.new_context(
            viewport={"width": 1280, "height": DEFAULT_VIEWPORT_HEIGHT},
            device_scale_factor=1,
        )
        self._page = await self._context.new_page()

    async def open(self, url: str) -> None:
        await self._page.goto(url, wait_until="networkidle", timeout=self.goto_timeout_ms)

    async def resize(self, width: int, height: int) -> None:
        await self._page.set_viewport_size({"width": width, "height": height})

    async def wait(self, delay_ms: int) -> None:
        if delay_ms > 0:
            await self._page.wait_for_timeout(delay_ms)

    async def measure(self, selector: str) -> float:
        result = await self._page.evaluate(MEASURE_SCRIPT, selector)
        count = result.get("count", 0)
        if count == 0:
            raise MeasurementError(f"selector {selector!r} matches no element")
        if count > 1:
            raise MeasurementError(f"selector {selector!r} is ambiguous: {count} elements match")
        return result.get("width")

    async def close(self) -> None:
        if self._context is not None:
            await self._context.close()
            self._context = None
            self._page = None
        if self._browser is not None:
            await self._browser.close()
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None


class ViewportWidthProfiler:
    def __init__(
        self,
        url: str,
        session_factory: Callable[[], RenderingSession] = PlaywrightSession,
        viewport_height: int = DEFAULT_VIEWPORT_HEIGHT,
        verbose: bool = False,
    ):
        self.url = url
        self.session_factory = session_factory
        self.viewport_height = viewport_height
        self.verbose = verbose

    async def profile(self, viewport_range: Tuple[int, int], selector: str, delay_ms: int = DEFAULT_DELAY_MS) -> RenderProfile:
        """Measure the element at every viewport width of the range, one pixel at a time.

        Any failure aborts the whole run with MeasurementError; there is no partial profile.
        """
        min_viewport, max_viewport = viewport_range
        if min_viewport < 1 or max_viewport < min_viewport:
            raise ValidationError(f"invalid viewport range {min_viewport}-{max_viewport}px")
        if delay_ms < 0:
            raise ValidationError(f"delay must be >= 0, got {delay_ms}")

        stage = "launch"
        widths: List[float] = []
        try:
            async with self.session_factory() as session:
                stage = "goto"
                await session.open(self.url)
                if self.verbose:
                    print(f"📐 Checking widths of {selector} on {self.url}")

                for viewport in range(min_viewport, max_viewport + 1):
                    stage = f"resize {viewport}px"
                    await session.resize(viewport, self.viewport_height)
                    await session.wait(delay_ms)
                    stage = f"measure {viewport}px"
                    width = await session.measure(selector)
                    if width is None or not math.isfinite(width) or width < 0:
                        raise MeasurementError(f"invalid width {width!r} at viewport {viewport}px")
                    widths.append(float(width))
                    if self.verbose:
                        print(f"\r   Current viewport: {viewport}px", end="", flush=True)
        except (MeasurementError, PlaywrightError, OSError) as exc:
            raise MeasurementError(f"{stage}: {exc}", stage="profiling") from exc
        finally:
            if self.verbose and widths:
                print()

        return RenderProfile(min_viewport=min_viewport, max_viewport=max_viewport, widths=tuple(widths))


@dataclass(frozen=True)
class DemandBucket:
    ideal_width: int
    weight: float
    views: int = 0


def ideal_width(rendered_width: float, density: float) -> int:
    """Physical pixels needed, rounded up.

    The product is rounded to 9 decimals before ceil on purpose, so float noise
    such as 300 * 1.1 == 330.00000000000006 does not add a pixel.
    """
    return math.ceil(round(rendered_width * density, 9))


def build_demand_histogram(
    dataset: ContextDataset,
    profile: RenderProfile,
    viewport_range: Tuple[int, int],
) -> List[DemandBucket]:
    """Share of page views needing each ideal (physical pixel) image width."""
    lo, hi = viewport_range
    views_by_width: Dict[int, int] = defaultdict(int)
    total_views = 0
    for sample in dataset.in_range(lo, hi):
        rendered = profile[sample.viewport_width]
        views_by_width[ideal_width(rendered, sample.density)] += sample.views
        total_views += sample.views

    if total_views <= 0:
        raise ValidationError(f"no page views between {lo}px and {hi}px")

    return [
        DemandBucket(ideal_width=width, weight=views / total_views, views=views)
        for width, views in sorted(views_by_width.items())
        if views > 0
    ]


@dataclass(frozen=True)
class WidthSelection:
    widths: Tuple[int, ...]
    waste: float


def compute_waste(
    buckets: Sequence[DemandBucket],
    widths: Sequence[int],
    undershoot_penalty: float = UNDERSHOOT_PENALTY,
) -> float:
    """Weighted pixels served beyond each bucket's ideal width.

    A bucket wider than every width gets the largest one, charged per missing pixel.
    """
    if not widths:
        raise ValidationError("no widths to evaluate")
    ordered = sorted(widths)
    largest = ordered[-1]
    waste = 0.0
    for bucket in buckets:
        served = next((w for w in ordered if w >= bucket.ideal_width), None)
        if served is None:
            waste += (bucket.ideal_width - largest) * bucket.weight * undershoot_penalty
        else:
            waste += (served - bucket.ideal_width) * bucket.weight
    return waste


def tie_tolerance(cost: float) -> float:
    return 1e-9 * max(1.0, abs(cost))


def merge_buckets(buckets: Sequence[DemandBucket]) -> List[DemandBucket]:
    weights: Dict[int, float] = defaultdict(float)
    views: Dict[int, int] = defaultdict(int)
    for bucket in buckets:
        weights[bucket.ideal_width] += bucket.weight
        views[bucket.ideal_width] += bucket.views
    return [
        DemandBucket(ideal_width=width, weight=weights[width], views=views[width])
        for width in sorted(weights)
        if weights[width] > 0
    ]


def select_widths(buckets: Sequence[DemandBucket], n: int) -> WidthSelection:
    """Pick at most n widths minimizing weighted overshoot.

    Sorted buckets are split into n contiguous groups, each served by its largest
    ideal width. best[k][i] is the cheapest split of the first i buckets into k
    groups; ties on waste go to the smaller representatives, largest first.
    """
    if isinstance(n, bool) or not isinstance(n, int) or n < 1:
        raise ValidationError(f"number of widths must be an integer >= 1, got {n!r}")
    if not buckets:
        raise ValidationError("no demand buckets to select widths from")

    points = merge_buckets(buckets)
    if not points:
        raise ValidationError("demand buckets carry no weight")
    # 0px buckets (element hidden) are never published; the smallest width serves them
    hidden_weight = sum(b.weight for b in points if b.ideal_width <= 0)
    visible = [b for b in points if b.ideal_width > 0]
    if not visible:
        raise ValidationError("image never renders wider than 0px")
    xs = [b.ideal_width for b in visible]
    count = len(visible)
    if count <= n:
        return WidthSelection(widths=tuple(xs), waste=compute_waste(points, xs))

    weight_sum = [0.0] * (count + 1)
    moment_sum = [0.0] * (count + 1)
    for i, bucket in enumerate(visible):
        weight_sum[i + 1] = weight_sum[i] + bucket.weight
        moment_sum[i + 1] = moment_sum[i] + bucket.weight * bucket.ideal_width

    def group_cost(start: int, stop: int) -> float:
        # visible[start:stop] all served by xs[stop - 1]
        cost = xs[stop - 1] * (weight_sum[stop] - weight_sum[start]) - (moment_sum[stop] - moment_sum[start])
        if start == 0:
            cost += xs[stop - 1] * hidden_weight
        return cost

    inf = float("inf")
    best: List[List[float]] = [[inf] * (count + 1) for _ in range(n + 1)]
    reps: List[List[Tuple[int, ...]]] = [[()] * (count + 1) for _ in range(n + 1)]
    split: List[List[int]] = [[-1] * (count + 1) for _ in range(n + 1)]
    best[0][0] = 0.0

    for k in range(1, n + 1):
        for stop in range(k, count - (n - k) + 1):
            best_cost = inf
            best_key: Tuple[int, ...] = ()
            best_start = -1
            for start in range(k - 1, stop):
                prev = best[k - 1][start]
                if prev == inf:
                    continue
                cost = prev + group_cost(start, stop)
                key = reps[k - 1][start]
                if best_start < 0 or cost < best_cost - tie_tolerance(best_cost):
                    best_cost, best_key, best_start = cost, key, start
                elif cost <= best_cost + tie_tolerance(best_cost) and key < best_key:
                    best_cost, best_key, best_start = min(cost, best_cost), key, start
            best[k][stop] = best_cost
            reps[k][stop] = (xs[stop - 1],) + best_key
            split[k][stop] = best_start

    chosen = []
    stop = count
    for k in range(n, 0, -1):
        chosen.append(xs[stop - 1])
        stop = split[k][stop]

    widths = tuple(sorted(chosen))
    return WidthSelection(widths=widths, waste=compute_waste(points, widths))


def simple_table(rows: List[Sequence[Any]], columns: List[str]) -> str:
    cells = [[str(c) for c in columns]] + [[str(v) for v in row] for row in rows]
    sizes = [max(len(row[i]) for row in cells) for i in range(len(columns))]
    lines = []
    for idx, row in enumerate(cells):
        lines.append("  ".join(value.rjust(sizes[i]) for i, value in enumerate(row)))
        if idx == 0:
            lines.append("  ".join("-" * size for size in sizes))
    return "\n".join(lines)


def format_width(value: float) -> str:
    return f"{int(value)}px" if float(value).is_integer() else f"{value:.2f}px"


def render_variations_csv(profile: RenderProfile) -> str:
    lines = [VARIATIONS_HEADER]
    for viewport, width in profile.items():
        value = int(width) if width.is_integer() else width
        lines.append(f"{viewport};{value}")
    return "\n".join(lines) + "\n"


def render_recommendation(url: str, selector: str, selection: WidthSelection) -> str:
    return (
        f"page           : {url}\n"
        f"image selector : {selector}\n"
        f"widths in srcset: {','.join(str(w) for w in selection.widths)}\n"
    )


def write_text(path: Path, content: str) -> None:
    with open(path, "x", encoding="utf-8") as f:
        f.write(content)


def write_outputs(outputs: List[Tuple[Path, str]]) -> List[Path]:
    """Write every output or none of them."""
    written: List[Path] = []
    for path, content in outputs:
        try:
            write_text(path, content)
        except FileExistsError as exc:
            remove_files(written)
            raise ValidationError(f"output file {path} already exists") from exc
        except OSError as exc:
            # "x" mode: an existing path here was created by this call
            remove_files(written + [path])
            raise SrcsetError(f"cannot write {path}: {exc}") from exc
        written.append(path)
    return written


def remove_files(paths: List[Path]) -> None:
    for path in paths:
        if path.exists():
            path.unlink()


@dataclass
class SrcsetConfig:
    contexts_file: Path
    url: str
    selector: str
    min_viewport: Optional[int] = None
    max_viewport: Optional[int] = None
    delay_ms: int = DEFAULT_DELAY_MS
    viewport_height: int = DEFAULT_VIEWPORT_HEIGHT
    widths_number: int = DEFAULT_WIDTHS_NUMBER
    variations_file: Optional[Path] = None
    dest_file: Optional[Path] = None
    timeout: Optional[float] = None
    verbose: bool = False

    def validate(self) -> None:
        if self.min_viewport is not None and self.min_viewport < 0:
            raise ValidationError("min viewport must be >= 0")
        if (
            self.min_viewport is not None
            and self.max_viewport is not None
            and self.max_viewport < self.min_viewport
        ):
            raise ValidationError("max viewport must be greater than min viewport")
        if self.delay_ms < 0:
            raise ValidationError("delay must be >= 0")
        if self.viewport_height < 1:
            raise ValidationError("viewport height must be >= 1")
        if self.widths_number < 1:
            raise ValidationError("widths number must be >= 1")
        if self.timeout is not None and self.timeout <= 0:
            raise ValidationError("timeout must be > 0")
        for label, output in (("variations", self.variations_file), ("destination", self.dest_file)):
            if not output:
                continue
            output = Path(output)
            if output.exists():
                raise ValidationError(f"{label} file {output} already exists")
            directory = output.parent
            if not directory.is_dir() or not os.access(directory, os.W_OK):
                raise ValidationError(f"{label} file {output}: directory {directory} is missing or not writable")
        if not self.dest_file and not self.verbose:
            raise ValidationError("result must be saved to a destination file and/or printed with verbose")


def resolve_viewport_range(dataset: ContextDataset, config: SrcsetConfig) -> Tuple[int, int]:
    lo = dataset.min_viewport()
    hi = dataset.max_viewport()
    if config.min_viewport is not None:
        lo = max(lo, config.min_viewport)
    if config.max_viewport is not None:
        hi = min(hi, config.max_viewport)
    if lo > hi:
        raise ValidationError(f"no context viewports between {config.min_viewport}px and {config.max_viewport}px")
    return lo, hi


@dataclass
class PipelineResult:
    viewport_range: Tuple[int, int]
    profile: RenderProfile
    buckets: List[DemandBucket]
    selection: WidthSelection
    written: List[Path] = field(default_factory=list)


async def run_pipeline(
    config: SrcsetConfig,
    session_factory: Callable[[], RenderingSession] = PlaywrightSession,
) -> PipelineResult:
    stage = "config"
    try:
        config.validate()

        stage = "contexts"
        if config.verbose:
            print("\nStep 1: get actual contexts (viewports & screen densities) of site visitors")
        dataset = ContextDataset.load(read_context_rows(Path(config.contexts_file)))
        viewport_range = resolve_viewport_range(dataset, config)
        if config.verbose:
            print(f"✅ Imported {len(dataset)} lines of context")
            print(f"   Viewports in context go from {dataset.min_viewport()}px to {dataset.max_viewport()}px")
            print(f"   Viewports will be considered from {viewport_range[0]}px to {viewport_range[1]}px")

        stage = "profiling"
        if config.verbose:
            print("\nStep 2: get variations of image width across viewport widths")
        profiler = ViewportWidthProfiler(
            config.url,
            session_factory=session_factory,
            viewport_height=config.viewport_height,
            verbose=config.verbose,
        )
        try:
            profile = await asyncio.wait_for(
                profiler.profile(viewport_range, config.selector, config.delay_ms),
                timeout=config.timeout,
            )
        except asyncio.TimeoutError:
            raise MeasurementError(f"profiling did not finish within {config.timeout}s") from None
        if config.verbose:
            print(simple_table(
                [[f"{viewport}px", format_width(width)] for viewport, width in profile.items()],
                ["viewport width", "image width"],
            ))

        stage = "histogram"
        if config.verbose:
            print("\nStep 3: compute optimal widths from both datasets")
        buckets = build_demand_histogram(dataset, profile, viewport_range)
        if config.verbose:
            print(f"✅ {len(buckets)} ideal widths have been computed")
            print(simple_table(
                [[f"{b.ideal_width}px", b.views, f"{b.weight * 100:.2f}%"] for b in buckets],
                ["ideal width", "views", "share"],
            ))

        stage = "selection"
        selection = select_widths(buckets, config.widths_number)
        if config.verbose:
            print(f"✅ Widths in srcset: {', '.join(str(w) for w in selection.widths)}")
            print(f"   Weighted waste: {selection.waste:.2f}px per view")

        stage = "output"
        outputs = []
        if config.variations_file:
            outputs.append((Path(config.variations_file), render_variations_csv(profile)))
        if config.dest_file:
            outputs.append((Path(config.dest_file), render_recommendation(config.url, config.selector, selection)))
        written = write_outputs(outputs)
        if config.verbose:
            for path in written:
                print(f"✅ Saved {path}")
    except SrcsetError as exc:
        exc.stage = exc.stage or stage
        raise
    except OSError as exc:
        raise SrcsetError(str(exc), stage=stage) from exc

    return PipelineResult(
        viewport_range=viewport_range,
        profile=profile,
        buckets=buckets,
        selection=selection,
        written=written,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Choose optimal responsive image widths to put in a srcset attribute",
        epilog=(
            "example: srcset-widths -c ./contexts.csv -u 'https://example.com/' "
            "-s 'main img[srcset]:first-of-type' -i 320 -x 1280 -a ./variations.csv -f ./srcset-widths.txt -v"
        ),
    )
    global_group = parser.add_argument_group("Global: limit viewport widths, for example for art direction")
    global_group.add_argument("--min-viewport", "-i", type=int, help="Minimum viewport width to check")
    global_group.add_argument("--max-viewport", "-x", type=int, help="Maximum viewport width to check")

    contexts_group = parser.add_argument_group("Step 1: get actual contexts of site visitors")
    contexts_group.add_argument(
        "--contexts-file",
        "-c",
        required=True,
        help="CSV file of actual contexts (viewport width in px, screen density in dppx, number of page views)",
    )

    variations_group = parser.add_argument_group("Step 2: get variations of image width across viewport widths")
    variations_group.add_argument("--url", "-u", required=True, help="Page URL")
    variations_group.add_argument("--selector", "-s", required=True, help="Image selector in the page")
    variations_group.add_argument(
        "--delay",
        "-d",
        type=int,
        default=DEFAULT_DELAY_MS,
        help="Delay after viewport resizing before checking image width (ms)",
    )
    variations_group.add_argument(
        "--viewport-height",
        type=int,
        default=DEFAULT_VIEWPORT_HEIGHT,
        help="Viewport height used while resizing (px)",
    )
    variations_group.add_argument("--timeout", type=float, help="Give up profiling after this many seconds")
    variations_group.add_argument(
        "--variations-file",
        "-a",
        help="CSV file to which saving the image width variations",
    )

    widths_group = parser.add_argument_group("Step 3: compute optimal n widths from both datasets")
    widths_group.add_argument(
        "--widths-number",
        "-n",
        type=int,
        default=DEFAULT_WIDTHS_NUMBER,
        help="Number of widths to recommend",
    )
    widths_group.add_argument("--dest-file", "-f", help="File to which saving the image widths for the srcset attribute")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log progress and result in the console")
    return parser


def config_from_args(args: argparse.Namespace) -> SrcsetConfig:
    return SrcsetConfig(
        contexts_file=Path(args.contexts_file),
        url=args.url,
        selector=args.selector,
        min_viewport=args.min_viewport,
        max_viewport=args.max_viewport,
        delay_ms=args.delay,
        viewport_height=args.viewport_height,
        widths_number=args.widths_number,
        variations_file=Path(args.variations_file) if args.variations_file else None,
        dest_file=Path(args.dest_file) if args.dest_file else None,
        timeout=args.timeout,
        verbose=args.verbose,
    )


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    config = config_from_args(args)
    try:
        asyncio.run(run_pipeline(config))
    except SrcsetError as exc:
        print(f"❌ {exc.stage or 'pipeline'} failed: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
