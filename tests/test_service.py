"""End-to-end tests for the random bytes app."""

import base64
import json
import logging

import pytest
import structlog
from starlette.testclient import TestClient

from randgate.client import build_headers
from randgate.common.errors import ConfigurationError
from randgate.common.logging import setup_logging
from randgate.common.settings import Settings
from randgate.service.disclosure import DISCLOSURE_TEXT
from randgate.service.main import create_app


def _values(body: str) -> list[int]:
    return [int(part) for part in body.split(",")]


class TestServedRequests:
    """Authenticated requests get random bytes."""

    @pytest.mark.parametrize("n", [1, 2, 16, 255, 256, 512, 1023, 1024])
    def test_returns_n_byte_values(self, client, signed_headers, n):
        response = client.get(f"/?byteLength={n}", headers=signed_headers(n))

        assert response.status_code == 200
        values = _values(response.text)
        assert len(values) == n
        assert all(0 <= v <= 255 for v in values)

    def test_identical_requests_get_different_payloads(self, client, signed_headers):
        headers = signed_headers(32)
        first = client.get("/?byteLength=32", headers=headers)
        second = client.get("/?byteLength=32", headers=headers)

        assert first.status_code == second.status_code == 200
        assert first.text != second.text

    def test_leading_zeros_canonicalize_to_plain_decimal(self, client, signed_headers):
        response = client.get("/?byteLength=016", headers=signed_headers(16))

        assert response.status_code == 200
        assert len(_values(response.text)) == 16

    def test_first_byte_length_value_wins(self, client, signed_headers):
        response = client.get("/?byteLength=8&byteLength=9", headers=signed_headers(8))

        assert response.status_code == 200
        assert len(_values(response.text)) == 8


class TestRejectedRequests:
    """Every failure is answered identically."""

    @pytest.mark.parametrize("n", [0, -1, 1025, 4096])
    def test_out_of_range_rejected_even_with_valid_mac(self, client, signed_headers, n):
        response = client.get(f"/?byteLength={n}", headers=signed_headers(n))

        assert response.status_code == 500
        assert response.text == DISCLOSURE_TEXT

    def test_missing_mac_header_rejected(self, client, signed_headers):
        headers = signed_headers(32)
        del headers["hmac"]

        response = client.get("/?byteLength=32", headers=headers)
        assert response.status_code == 500

    def test_wrong_method_rejected_with_valid_mac(self, client, signed_headers):
        response = client.post("/?byteLength=32", headers=signed_headers(32))
        assert response.status_code == 500
        assert response.text == DISCLOSURE_TEXT

    def test_wrong_path_rejected_with_valid_mac(self, client, signed_headers):
        response = client.get("/other?byteLength=32", headers=signed_headers(32, path="/other"))
        assert response.status_code == 500
        assert response.text == DISCLOSURE_TEXT

    @pytest.mark.parametrize("bit", [0, 191, 383])
    def test_single_bit_flip_rejected(self, client, signed_headers, bit):
        headers = signed_headers(32)
        raw = bytearray(base64.b64decode(headers["hmac"]))
        raw[bit // 8] ^= 1 << (bit % 8)
        headers["hmac"] = base64.b64encode(bytes(raw)).decode("ascii")

        response = client.get("/?byteLength=32", headers=headers)
        assert response.status_code == 500

    def test_mac_for_other_length_rejected(self, client, signed_headers):
        response = client.get("/?byteLength=32", headers=signed_headers(64))
        assert response.status_code == 500

    def test_all_rejections_are_byte_identical(self, client, signed_headers):
        valid = signed_headers(32)
        no_mac = {k: v for k, v in valid.items() if k != "hmac"}
        no_psk = {k: v for k, v in valid.items() if k != "X-Random-Psk"}
        bad_psk = {**valid, "X-Random-Psk": "wrong"}
        bad_mac = {**valid, "hmac": signed_headers(33)["hmac"]}
        garbage_mac = {**valid, "hmac": "%%% not base64 %%%"}

        responses = [
            client.post("/?byteLength=32", headers=valid),
            client.delete("/?byteLength=32", headers=valid),
            client.request("FETCH", "/?byteLength=32", headers=valid),
            client.get("/nope?byteLength=32", headers=valid),
            client.get("/?byteLength=32", headers=no_mac),
            client.get("/?byteLength=32", headers=no_psk),
            client.get("/?byteLength=32", headers=bad_psk),
            client.get("/?byteLength=0", headers=valid),
            client.get("/?byteLength=1025", headers=valid),
            client.get("/?byteLength=abc", headers=valid),
            client.get("/", headers=valid),
            client.get("/?byteLength=32", headers=bad_mac),
            client.get("/?byteLength=32", headers=garbage_mac),
        ]

        assert {r.status_code for r in responses} == {500}
        assert {r.content for r in responses} == {DISCLOSURE_TEXT.encode("utf-8")}
        assert {r.headers["content-type"] for r in responses} == {"text/plain; charset=utf-8"}

    def test_internal_error_is_coerced_to_rejection(self, client, signed_headers, monkeypatch):
        def _boom(byte_length):
            raise OSError("entropy source unavailable")

        monkeypatch.setattr("randgate.service.main.generate", _boom)

        response = client.get("/?byteLength=32", headers=signed_headers(32))
        assert response.status_code == 500
        assert response.text == DISCLOSURE_TEXT

    def test_generator_never_runs_for_rejected_requests(self, client, signed_headers, monkeypatch):
        calls: list[int] = []
        monkeypatch.setattr("randgate.service.main.generate", lambda n: calls.append(n) or b"")

        client.get("/?byteLength=32", headers=signed_headers(31))
        client.get("/?byteLength=32", headers={**signed_headers(32), "X-Random-Psk": "wrong"})
        client.post("/?byteLength=32", headers=signed_headers(32))

        assert calls == []


class TestConfiguration:
    """App construction from settings."""

    def test_custom_status_and_disclosure_file(self, tmp_path, signed_headers):
        disclosure = tmp_path / "disclosure.txt"
        disclosure.write_text("see https://example.com/source\n", encoding="utf-8")
        settings = Settings(
            auth_header_name="X-Random-Psk",
            auth_header_value="psk-7f3a9c",
            hmac_secret="test-hmac-secret",
            reject_status_code=403,
            disclosure_path=str(disclosure),
        )

        with TestClient(create_app(settings)) as client:
            response = client.get("/?byteLength=0", headers=signed_headers(0))

        assert response.status_code == 403
        assert response.text == "see https://example.com/source\n"

    def test_custom_route_and_mac_header(self, auth_config):
        settings = Settings(
            auth_header_name="X-Random-Psk",
            auth_header_value="psk-7f3a9c",
            hmac_secret="test-hmac-secret",
            route_path="/bytes",
            mac_header="X-Mac",
        )
        headers = build_headers(auth_config, "/bytes", 8, mac_header="X-Mac")

        with TestClient(create_app(settings)) as client:
            served = client.get("/bytes?byteLength=8", headers=headers)
            root = client.get("/?byteLength=8", headers=headers)

        assert served.status_code == 200
        assert root.status_code == 500

    def test_missing_disclosure_file_fails_startup(self, tmp_path):
        settings = Settings(
            auth_header_name="X-Random-Psk",
            auth_header_value="psk-7f3a9c",
            hmac_secret="test-hmac-secret",
            disclosure_path=str(tmp_path / "missing.txt"),
        )
        with pytest.raises(ConfigurationError):
            create_app(settings)

    def test_blank_header_name_fails_startup(self):
        settings = Settings(
            auth_header_name="  ",
            auth_header_value="psk-7f3a9c",
            hmac_secret="test-hmac-secret",
        )
        with pytest.raises(ConfigurationError):
            create_app(settings)


@pytest.fixture
def json_logs(capsys):
    """JSON logging into the captured stdout, restored afterwards."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    setup_logging("DEBUG", json_output=True)
    structlog.configure(
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )
    yield
    structlog.reset_defaults()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestLogging:
    """Log events never carry secrets or request contents."""

    def test_logs_omit_secrets_and_header_values(
        self, json_logs, client, settings, signed_headers, monkeypatch, capsys
    ):
        served = signed_headers(8)
        validation = signed_headers(0)
        authentication = {**signed_headers(16), "X-Random-Psk": "caller-supplied-psk"}
        internal = signed_headers(24)

        assert client.get("/?byteLength=8", headers=served).status_code == 200
        assert client.get("/?byteLength=0", headers=validation).status_code == 500
        assert client.get("/?byteLength=16", headers=authentication).status_code == 500

        def _boom(byte_length):
            raise OSError("entropy source unavailable")

        monkeypatch.setattr("randgate.service.main.generate", _boom)
        assert client.get("/?byteLength=24", headers=internal).status_code == 500

        out = capsys.readouterr().out
        events = []
        for line in out.splitlines():
            try:
                events.append(json.loads(line))
            except ValueError:
                continue

        assert {"event": "Request served", "byte_length": 8}.items() <= next(
            e for e in events if e.get("event") == "Request served"
        ).items()
        stages = {e.get("stage") for e in events if e.get("event") == "Request rejected"}
        assert stages == {"validation", "authentication", "internal"}

        forbidden = [
            settings.auth_header_value.get_secret_value(),
            settings.hmac_secret.get_secret_value(),
            "caller-supplied-psk",
            served["hmac"],
            validation["hmac"],
            authentication["hmac"],
            internal["hmac"],
        ]
        for value in forbidden:
            assert value not in out
