"""Line-delimited JSON-RPC transport.

Each line on the input stream is one JSON-RPC envelope; each response is
written as one line on the output stream. Lines are handled strictly in
arrival order, one at a time.
"""

import json
import logging
import sys
from typing import Any, Awaitable, Callable, Dict, List, Optional

import anyio
from mcp.types import Implementation, InitializeResult, ServerCapabilities, ToolsCapability

from .config import ServerConfig
from .core.dispatcher import Dispatcher
from .core.tools import ToolRegistry
from .errors import REQUEST_ERROR, ProtocolError, describe_error
from .results import to_call_result

logger = logging.getLogger(__name__)

JSONRPC_VERSION = "2.0"
READ_CHUNK_SIZE = 64 * 1024

Message = Dict[str, Any]
ReadChunk = Callable[[], Awaitable[bytes]]
WriteLine = Callable[[str], Awaitable[None]]


class LineBuffer:
    """Accumulates raw chunks and yields complete newline-terminated lines.

    The trailing fragment after the last newline is always held back until a
    later chunk completes it (or ``flush`` is called at end of input).
    """

    def __init__(self):
        self._pending = b""

    @property
    def pending(self) -> bytes:
        return self._pending

    def feed(self, chunk: bytes) -> List[str]:
        *lines, self._pending = (self._pending + chunk).split(b"\n")
        return [line.decode("utf-8", errors="replace") for line in lines]

    def flush(self) -> List[str]:
        rest, self._pending = self._pending, b""
        return [rest.decode("utf-8", errors="replace")] if rest.strip() else []


def _envelope(message: Message, **body: Any) -> Message:
    response: Message = {"jsonrpc": JSONRPC_VERSION}
    if "id" in message:
        response["id"] = message["id"]
    response.update(body)
    return response


def error_response(error: ProtocolError, message: Optional[Message] = None) -> Message:
    return _envelope(message or {}, error={"code": error.code, "message": error.message})


class MessageHandler:
    """Resolves JSON-RPC methods and drives the dispatcher."""

    def __init__(
        self,
        config: ServerConfig,
        dispatcher: Optional[Dispatcher] = None,
        registry: Optional[ToolRegistry] = None,
    ):
        self.config = config
        self.registry = registry or ToolRegistry()
        self.dispatcher = dispatcher or Dispatcher(config, self.registry)

    async def handle_line(self, line: str) -> Optional[Message]:
        if not line.strip():
            return None
        try:
            message = json.loads(line)
        except (ValueError, RecursionError):
            # deeply nested input overflows the decoder with RecursionError
            logger.warning(f"Unparseable line: {line[:200]!r}")
            return error_response(ProtocolError.parse_error())
        if not isinstance(message, dict):
            logger.warning(f"Line is not a JSON object: {line[:200]!r}")
            return error_response(ProtocolError.parse_error())
        return await self.handle_message(message)

    async def handle_message(self, message: Message) -> Optional[Message]:
        method = message.get("method")
        if "id" not in message and isinstance(method, str) and method.startswith("notifications/"):
            logger.debug(f"Notification received: {method}")
            return None

        try:
            if method == "initialize":
                return _envelope(message, result=self.initialize_result())
            if method == "tools/list":
                return _envelope(message, result={"tools": self.registry.as_wire()})
            if method == "tools/call":
                return _envelope(message, result=await self.call_tool(message.get("params")))
            raise ProtocolError.unknown_method(method)
        except ProtocolError as e:
            logger.warning(f"Request failed: {e}")
            return error_response(e, message)
        except Exception as e:
            logger.exception(f"Unexpected error handling {method}: {e}")
            return error_response(ProtocolError(describe_error(e), code=REQUEST_ERROR), message)

    def initialize_result(self) -> Message:
        result = InitializeResult(
            protocolVersion=self.config.protocol_version,
            capabilities=ServerCapabilities(tools=ToolsCapability()),
            serverInfo=Implementation(
                name=self.config.server_name,
                version=self.config.server_version,
            ),
        )
        return result.model_dump(mode="json", by_alias=True, exclude_none=True)

    async def call_tool(self, params: Any) -> Message:
        if params is None:
            params = {}
        if not isinstance(params, dict):
            raise ProtocolError("Invalid params: expected an object")
        name = params.get("name")
        if name is None:
            raise ProtocolError("Invalid params: missing tool name")
        arguments = params.get("arguments")
        result = await self.dispatcher.dispatch(name, {} if arguments is None else arguments)
        return to_call_result(result)


async def process_stream(
    handler: MessageHandler, read_chunk: ReadChunk, write_line: WriteLine
) -> None:
    """Pump chunks from ``read_chunk`` through ``handler`` until end of input."""
    buffer = LineBuffer()

    async def respond(line: str) -> None:
        response = await handler.handle_line(line)
        if response is not None:
            await write_line(json.dumps(response, ensure_ascii=False))

    while True:
        chunk = await read_chunk()
        if not chunk:
            break
        for line in buffer.feed(chunk):
            await respond(line)

    for line in buffer.flush():
        await respond(line)


async def run_stdio(handler: MessageHandler) -> None:
    """Serve the line protocol on the process's stdin/stdout."""
    stdin = anyio.wrap_file(sys.stdin.buffer)
    stdout = anyio.wrap_file(sys.stdout.buffer)

    async def read_chunk() -> bytes:
        return await stdin.read1(READ_CHUNK_SIZE)

    async def write_line(text: str) -> None:
        await stdout.write((text + "\n").encode("utf-8"))
        await stdout.flush()

    logger.info("Git MCP server running on stdio")
    await process_stream(handler, read_chunk, write_line)
    logger.info("Input closed, shutting down")
