import pytest

from srcset_widths import MeasurementError, RenderingSession


class FakeSession(RenderingSession):
    """In-memory page whose image width is a function of the viewport width."""

    def __init__(self, width_for=None, fail_at=None, fail_on_open=False, matches=1):
        self.width_for = width_for or (lambda viewport: viewport / 2)
        self.fail_at = fail_at
        self.fail_on_open = fail_on_open
        self.matches = matches
        self.launched = False
        self.closed = False
        self.url = None
        self.viewport = None
        self.resizes = []
        self.waits = []

    async def launch(self):
        self.launched = True

    async def open(self, url):
        if self.fail_on_open:
            raise MeasurementError(f"cannot load {url}")
        self.url = url

    async def resize(self, width, height):
        self.viewport = (width, height)
        self.resizes.append(self.viewport)

    async def wait(self, delay_ms):
        self.waits.append(delay_ms)

    async def measure(self, selector):
        if self.matches == 0:
            raise MeasurementError(f"selector {selector!r} matches no element")
        if self.matches > 1:
            raise MeasurementError(f"selector {selector!r} is ambiguous: {self.matches} elements match")
        width, _ = self.viewport
        if self.fail_at is not None and width == self.fail_at:
            raise MeasurementError(f"renderer crashed at {width}px")
        return self.width_for(width)

    async def close(self):
        self.closed = True


@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture
def contexts_csv(tmp_path):
    path = tmp_path / "contexts.csv"
    path.write_text(
        "viewport,density,views\n"
        "320,2,500\n"
        "360,3,300\n"
        "400,1,200\n",
        encoding="utf-8",
    )
    return path
