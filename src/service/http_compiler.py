"""Remote compile service backend.

Sends a CompileJob to a compile service sharing the package checkout and
writes the returned artifacts into the dist directory.

Data Flow:
    pkgforge: HTTP POST {job, root} to the compile service
    Service: compiles, returns {result: CompileResult, files: {path: content}}
    pkgforge: writes files under dist, returns the CompileResult
"""

import logging
from pathlib import Path

import httpx

from src.config import DEFAULT_COMPILER_URL
from src.errors import CompileError
from src.models.compile_result import CompileResult
from src.service.compiler import CompileJob

logger = logging.getLogger(__name__)


class HttpCompiler:
    """Compiler that delegates to a compile service over HTTP."""

    def __init__(
        self,
        root: Path,
        dist: Path,
        url: str = DEFAULT_COMPILER_URL,
        timeout: float = 300.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.root = root
        self.dist = dist
        self.url = url
        self.timeout = timeout
        self.transport = transport

    async def compile(self, job: CompileJob) -> CompileResult:
        """POST ``job`` and materialize the response.

        Raises:
            CompileError: On transport errors or a non-2xx response
        """
        payload = {"job": job.model_dump(mode="json"), "root": str(self.root)}
        logger.debug(f"POST {self.url} ({job.target.kind.value}, {len(job.inputs)} inputs)")

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.url, json=payload)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise CompileError(
                f"Compile service returned {e.response.status_code} for {job.target.kind.value}",
                stderr=e.response.text,
            ) from e
        except httpx.HTTPError as e:
            raise CompileError(f"Compile service unreachable at {self.url}: {e}") from e

        body = response.json()
        for path, content in body.get("files", {}).items():
            target = (self.dist / path).resolve()
            if not target.is_relative_to(self.dist.resolve()):
                raise CompileError(f"Compile service returned a file outside dist: {path}")
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")

        return CompileResult.model_validate(body["result"])
