import httpx
import pytest

from waterdata.settings import Settings

UPSTREAM_URL = "https://upstream.test/wq/XML/ADTS.json"

SAMPLE_RECORDS = [
    {
        "station_name": "板新淨水場",
        "latitude": "25.0012",
        "longitude": "121.4389",
        "pH_value": "7.4",
        "turbidity(NTU)": "0.3",
        "residual_chlorine(mg/L)": "0.52",
    },
    {
        "station_name": "鳳山淨水場",
        "latitude": "22.6271",
        "longitude": "120.3592",
        "pH_value": "7.8",
        "turbidity(NTU)": "1.6",
        "residual_chlorine(mg/L)": "",
    },
    {
        "station_name": "澎湖海淡廠",
        "latitude": "",
        "longitude": "119.5793",
        "pH_value": "",
        "turbidity(NTU)": "0.1",
    },
]


class FakeUpstream:
    """Callable handler for httpx.MockTransport with a switchable failure mode."""

    def __init__(self, records):
        self.records = records
        self.mode = "ok"
        self.calls = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls += 1
        if self.mode == "down":
            raise httpx.ConnectError("connection refused", request=request)
        if self.mode == "error":
            return httpx.Response(503, text="service unavailable")
        if self.mode == "garbage":
            return httpx.Response(200, text="<html>maintenance</html>")
        if self.mode == "nan-literal":
            return httpx.Response(
                200,
                content=b'[{"station_name": "x", "pH_value": NaN}]',
                headers={"Content-Type": "application/json"},
            )
        if self.mode == "overflow":
            return httpx.Response(
                200,
                content=b'[{"station_name": "x", "latitude": 1e999}]',
                headers={"Content-Type": "application/json"},
            )
        if self.mode == "object":
            return httpx.Response(200, json={"records": self.records})
        return httpx.Response(200, json=self.records)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def records():
    return [dict(record) for record in SAMPLE_RECORDS]


@pytest.fixture
def upstream(records):
    return FakeUpstream(records)


@pytest.fixture
def settings():
    return Settings(data_url=UPSTREAM_URL, refresh_interval_seconds=3600)
