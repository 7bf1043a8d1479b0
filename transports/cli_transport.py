import json
import logging
import subprocess
from typing import Any, Mapping

from common.config import ClientOptions
from common.errors import TransportError
from transports.transport_interface import Transport, TransportResponse

logger = logging.getLogger(__name__)


class CliTransport(Transport):
    """
    Transport that shells out to the local abstract-cli binary.

    Each request is one process:
        <cli_path> --user-token <token> --api-url <url> request <METHOD> <path>
            [--query <json>] [--body <json>]
    On success stdout carries the response body. On failure the CLI writes
    {"status": ..., "body": ...} to stderr and exits non-zero.
    """
    def __init__(self, options: ClientOptions):
        if not options.cli_path:
            raise ValueError("CliTransport requires cli_path")
        self.options = options
        self.cli_path = options.cli_path

    def build_args(self, method: str, path: str, query: Mapping[str, Any] | None, body: Any) -> list[str]:
        args = [self.cli_path]
        if self.options.access_token:
            args += ["--user-token", self.options.access_token]
        args += ["--api-url", self.options.api_url, "request", method.upper(), path]
        params = {k: v for k, v in (query or {}).items() if v is not None}
        if params:
            args += ["--query", json.dumps(params)]
        if body is not None:
            args += ["--body", json.dumps(body)]
        return args

    def send(
        self,
        method: str,
        path: str,
        *,
        query: Mapping[str, Any] | None = None,
        body: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> TransportResponse:
        args = self.build_args(method, path, query, body)
        expects_json = "json" in (headers or {}).get("Accept", "application/json")
        logger.debug("%s %s via %s", method, path, self.cli_path)
        try:
            proc = subprocess.run(args, capture_output=True, timeout=self.options.timeout)
        except FileNotFoundError as exc:
            raise TransportError(f"abstract-cli not found at {self.cli_path}") from exc
        except subprocess.TimeoutExpired as exc:
            raise TransportError(f"abstract-cli timed out after {self.options.timeout}s: {method} {path}") from exc
        except OSError as exc:
            raise TransportError(f"Could not run abstract-cli: {exc}") from exc

        if proc.returncode != 0:
            status, error_body = _parse_failure(proc.stderr)
            logger.debug("%s %s -> exit %s, status %s", method, path, proc.returncode, status)
            return TransportResponse(status=status, body=error_body)

        if not expects_json:
            return TransportResponse(status=200, body=proc.stdout)
        if not proc.stdout.strip():
            return TransportResponse(status=200, body=None)
        try:
            return TransportResponse(status=200, body=json.loads(proc.stdout))
        except ValueError as exc:
            raise TransportError(f"abstract-cli returned undecodable output for {method} {path}") from exc

    def close(self) -> None:
        """Nothing to release: every request is its own process."""


def _parse_failure(stderr: bytes) -> tuple[int, Any]:
    """Read {"status", "body"} from the CLI's stderr, else report a 500 with the raw text."""
    text = stderr.decode(errors="replace").strip()
    try:
        payload = json.loads(text)
    except ValueError:
        return 500, text
    if isinstance(payload, dict) and isinstance(payload.get("status"), int):
        return payload["status"], payload.get("body")
    return 500, payload
