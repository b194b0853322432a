"""
=============================================================================
CONNECTION HANDLER
=============================================================================

Runs one complete exchange on one connection: read, parse, resolve, open,
respond, close.

=============================================================================
OUTCOMES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │  step                 failure                     client sees      │
    ├─────────────────────────────────────────────────────────────────────┤
    │  receive()            peer closed / read error    nothing           │
    │                       deadline expired            nothing           │
    │  RequestParser        ProtocolError               400               │
    │  check_method()       MethodNotAllowedError       405 + Allow: GET  │
    │  PathResolver         PathError                   400               │
    │  open_file()          NotFoundError               404               │
    │                       ForbiddenError              403               │
    │  ResponseWriter       TransportError              truncated body    │
    │  (success)                                        200 + file bytes  │
    └─────────────────────────────────────────────────────────────────────┘

Whatever happens, the connection is closed before handle() returns and no
exception escapes. One broken client can never take the server down.

=============================================================================
"""

import logging
from typing import Optional

from ..config import ServerConfig
from ..core.connection import Connection, ConnectionState
from ..errors import HTTPError, MethodNotAllowedError, ProtocolError, TransportError
from ..http.request import RequestParser
from ..http.response import (
    HTTPResponse, ResponseWriter,
    bad_request, error_response, method_not_allowed,
)
from ..http.status_codes import HTTPStatus
from .static import StaticFileHandler


logger = logging.getLogger(__name__)


class ConnectionHandler:
    """
    Orchestrates parser, static handler and writer for one connection.

    The handler holds no per-connection state, so one instance can serve
    connections from several worker threads at once.

    Usage:
        handler = ConnectionHandler.from_config(config)
        handler(conn)           # blocks until conn is closed
    """

    def __init__(
        self,
        static: StaticFileHandler,
        parser: Optional[RequestParser] = None,
        writer: Optional[ResponseWriter] = None,
    ):
        self.static = static
        self.parser = parser or RequestParser()
        self.writer = writer or ResponseWriter()

    @classmethod
    def from_config(cls, config: ServerConfig) -> "ConnectionHandler":
        """Build a handler with every limit taken from the config."""
        return cls(
            static=StaticFileHandler(
                config.root,
                index_file=config.index_file,
                max_path_length=config.max_path_length,
            ),
            parser=RequestParser(
                max_method_length=config.max_method_length,
                max_target_length=config.max_target_length,
                max_version_length=config.max_version_length,
            ),
            writer=ResponseWriter(
                chunk_size=config.chunk_size,
                server_name=config.server_name,
            ),
        )

    def __call__(self, conn: Connection) -> Optional[HTTPStatus]:
        return self.handle(conn)

    def handle(self, conn: Connection) -> Optional[HTTPStatus]:
        """
        Handle one connection from first byte to close.

        Returns:
            The status that was sent, or None if no response went out
            completely (peer gone, timeout, write failure).
        """
        with conn:
            try:
                response = self._process(conn)
                if response is None:
                    return None

                conn.state = ConnectionState.RESPONDING
                body_bytes = self.writer.write(conn, response)
                logger.debug(
                    f"[{conn.id}] {int(response.status)} {response.status.phrase} "
                    f"to {conn.peer} ({body_bytes} body bytes)"
                )
                return response.status

            except TransportError as e:
                logger.warning(f"[{conn.id}] Connection to {conn.peer} aborted: {e}")
            except Exception as e:
                logger.exception(f"[{conn.id}] Unexpected error: {e}")
        return None

    def _process(self, conn: Connection) -> Optional[HTTPResponse]:
        """
        Walk the state machine up to the point where a response exists.

        Returns None when there is nobody to answer.
        """
        # ─────────────────────────────────────────────────────────────────
        # RECEIVING_REQUEST
        # ─────────────────────────────────────────────────────────────────
        raw = conn.receive()
        if not raw:
            logger.debug(f"[{conn.id}] {conn.peer} closed without sending a request")
            return None

        # ─────────────────────────────────────────────────────────────────
        # PARSED
        # ─────────────────────────────────────────────────────────────────
        try:
            request = self.parser.parse(raw)
        except ProtocolError as e:
            logger.info(f"Malformed request from {conn.peer}: {e}")
            return bad_request()

        conn.state = ConnectionState.PARSED
        logger.info(f"{request.method} {request.target} from {conn.peer}")

        try:
            self.static.check_method(request)

            # ─────────────────────────────────────────────────────────────
            # PATH_RESOLVED
            # ─────────────────────────────────────────────────────────────
            path = self.static.resolve(request)
            conn.state = ConnectionState.PATH_RESOLVED

            # ─────────────────────────────────────────────────────────────
            # FILE_CHECKED
            # ─────────────────────────────────────────────────────────────
            source, metadata = self.static.open(path)
            conn.state = ConnectionState.FILE_CHECKED

        except HTTPError as e:
            logger.debug(f"[{conn.id}] {int(e.status)} for {request.target}: {e}")
            return self._error_response(e)

        return self.static.build_response(path, source, metadata)

    @staticmethod
    def _error_response(error: HTTPError) -> HTTPResponse:
        if isinstance(error, MethodNotAllowedError):
            return method_not_allowed(error.allowed)
        return error_response(error.status)
