"""
Local web UI for the adoption assistant.

Provides:
- JSON view of the orchestrator snapshot
- Intent endpoints (submit code, rescan, adopt)
- WebSocket pushing every new snapshot
- A minimal inline page that renders the four setup views
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import HTMLResponse, JSONResponse
from pydantic import BaseModel
import uvicorn

from apadopt import __version__
from apadopt.assistant.codes import normalize_code
from apadopt.core.config import AssistantConfig
from apadopt.core.models import OrchestratorSnapshot
from apadopt.core.orchestrator import AdoptionOrchestrator

logger = logging.getLogger(__name__)


class CodeSubmission(BaseModel):
    """Setup code as typed by the user."""

    code: str


class AdoptRequest(BaseModel):
    """Adoption request; password only after an authentication failure."""

    password: str | None = None


class ConnectionManager:
    """Manages WebSocket connections."""

    def __init__(self):
        self._connections: list[WebSocket] = []

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self._connections.append(websocket)

    def disconnect(self, websocket: WebSocket) -> None:
        if websocket in self._connections:
            self._connections.remove(websocket)

    async def broadcast(self, message: dict[str, Any]) -> None:
        """Send message to all connected clients."""
        dead_connections = []

        for connection in self._connections:
            try:
                await connection.send_json(message)
            except Exception:
                dead_connections.append(connection)

        for conn in dead_connections:
            self.disconnect(conn)

    @property
    def connection_count(self) -> int:
        return len(self._connections)


class AssistantServer:
    """
    Web front end for an AdoptionOrchestrator.

    The server only translates HTTP into orchestrator intents and
    snapshots into JSON; all flow decisions stay in the orchestrator.
    """

    def __init__(
        self,
        orchestrator: AdoptionOrchestrator,
        config: AssistantConfig | None = None,
    ):
        self._orchestrator = orchestrator
        self._config = config or AssistantConfig()
        self._app = FastAPI(
            title="Access Point Setup Assistant",
            version=__version__,
            docs_url=None,
            redoc_url=None,
        )
        self._ws_manager = ConnectionManager()
        self._pending_broadcasts: set[asyncio.Task] = set()
        self._server: uvicorn.Server | None = None
        self._server_task: asyncio.Task | None = None

        self._unsubscribe = orchestrator.subscribe(self._on_snapshot)
        self._setup_routes()

    @property
    def app(self) -> FastAPI:
        """Get FastAPI app instance."""
        return self._app

    def _setup_routes(self) -> None:
        """Configure all routes."""
        self._app.get("/health")(self._health_check)
        self._app.get("/", response_class=HTMLResponse)(self._get_index)
        self._app.get("/api/state")(self._get_state)
        self._app.post("/api/code")(self._submit_code)
        self._app.post("/api/scan")(self._rescan)
        self._app.post("/api/devices/{hardware_id}/adopt")(self._adopt)
        self._app.websocket("/ws")(self._websocket_endpoint)

    # ========================================================================
    # Routes
    # ========================================================================

    async def _health_check(self) -> dict[str, Any]:
        return {
            "status": "ok",
            "service": "apadopt",
            "connections": self._ws_manager.connection_count,
        }

    async def _get_index(self) -> HTMLResponse:
        return HTMLResponse(content=INDEX_HTML)

    async def _get_state(self) -> dict[str, Any]:
        return self._orchestrator.snapshot.to_dict()

    async def _submit_code(self, submission: CodeSubmission) -> JSONResponse:
        code = normalize_code(submission.code, self._config.code_prefix)
        accepted = await self._orchestrator.submit_code(code)
        return self._intent_response(accepted)

    async def _rescan(self) -> JSONResponse:
        accepted = await self._orchestrator.rescan()
        return self._intent_response(accepted)

    async def _adopt(self, hardware_id: str, request: AdoptRequest | None = None) -> JSONResponse:
        if request is not None and request.password is not None:
            accepted = await self._orchestrator.adopt_with_credential(
                hardware_id, request.password
            )
        else:
            accepted = await self._orchestrator.adopt(hardware_id)
        return self._intent_response(accepted)

    def _intent_response(self, accepted: bool) -> JSONResponse:
        return JSONResponse(
            status_code=200 if accepted else 409,
            content={
                "accepted": accepted,
                "state": self._orchestrator.snapshot.to_dict(),
            },
        )

    # ========================================================================
    # WebSocket
    # ========================================================================

    async def _websocket_endpoint(self, websocket: WebSocket) -> None:
        """Send the current snapshot, then every new one."""
        await self._ws_manager.connect(websocket)

        try:
            await websocket.send_json(self._orchestrator.snapshot.to_dict())

            while True:
                try:
                    await asyncio.wait_for(websocket.receive_text(), timeout=30.0)
                except asyncio.TimeoutError:
                    await websocket.send_json({"type": "ping"})

        except WebSocketDisconnect:
            pass
        finally:
            self._ws_manager.disconnect(websocket)

    def _on_snapshot(self, snapshot: OrchestratorSnapshot) -> None:
        """Orchestrator subscriber: fan the snapshot out to WebSocket clients."""
        if self._ws_manager.connection_count == 0:
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return

        task = loop.create_task(self._ws_manager.broadcast(snapshot.to_dict()))
        self._pending_broadcasts.add(task)
        task.add_done_callback(self._pending_broadcasts.discard)

    # ========================================================================
    # Server Control
    # ========================================================================

    async def start(self) -> None:
        """Start the server in background."""
        config = uvicorn.Config(
            self._app,
            host=self._config.host,
            port=self._config.port,
            log_level="warning",
        )
        self._server = uvicorn.Server(config)
        self._server_task = asyncio.create_task(self._server.serve())
        logger.info(f"Assistant listening on http://{self._config.host}:{self._config.port}")

    async def stop(self) -> None:
        """Stop the server."""
        self._unsubscribe()

        if self._server:
            self._server.should_exit = True
            if self._server_task:
                try:
                    await asyncio.wait_for(self._server_task, timeout=5.0)
                except asyncio.TimeoutError:
                    self._server_task.cancel()
                except asyncio.CancelledError:
                    pass
            self._server = None
            self._server_task = None


INDEX_HTML = """
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Access Point Setup</title>
    <style>
        * { box-sizing: border-box; }
        body {
            font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
            background: #f9fafb;
            color: #111827;
            margin: 0;
        }
        main { max-width: 520px; margin: 40px auto; padding: 0 20px; }
        h2 { margin-bottom: 4px; }
        .muted { color: #6b7280; font-size: 14px; }
        .error { background: #fef2f2; border: 1px solid #fecaca; color: #b91c1c;
                 border-radius: 8px; padding: 10px; font-size: 14px; margin: 12px 0; }
        .card { background: white; border: 1px solid #e5e7eb; border-radius: 8px;
                padding: 14px; margin: 12px 0; }
        .card.managed { opacity: 0.6; background: #f3f4f6; }
        input { font-size: 16px; padding: 8px; border: 1px solid #d1d5db; border-radius: 6px; }
        #code { width: 100%; text-align: center; font-size: 28px; font-family: monospace; }
        button { margin-top: 8px; padding: 8px 16px; border: 0; border-radius: 6px;
                 background: #2563eb; color: white; font-size: 14px; cursor: pointer; }
        button:disabled { background: #e5e7eb; color: #9ca3af; cursor: default; }
    </style>
</head>
<body>
<main id="view"></main>
<script>
    const view = document.getElementById('view');
    let snapshot = null;

    function esc(text) {
        const div = document.createElement('div');
        div.textContent = text == null ? '' : String(text);
        return div.innerHTML;
    }

    async function post(url, body) {
        const response = await fetch(url, {
            method: 'POST',
            headers: {'Content-Type': 'application/json'},
            body: JSON.stringify(body || {}),
        });
        const data = await response.json();
        if (data.state) {
            render(data.state);
        }
    }

    function deviceCard(device, busy) {
        const status = device.status;
        if (device.managed_elsewhere) {
            return `<div class="card managed"><strong>${esc(device.display_name)}</strong>
                <div class="muted">${esc(device.hardware_id)} &middot; ${esc(device.network_address)}</div>
                <div class="muted">Managed by another controller</div></div>`;
        }
        const id = encodeURIComponent(device.hardware_id);
        let html = `<div class="card" data-device="${id}"><strong>${esc(device.display_name)}</strong>
            <div class="muted">${esc(device.hardware_id)} &middot; ${esc(device.network_address)}</div>`;
        if (device.firmware_version) {
            html += `<div class="muted">Firmware: ${esc(device.firmware_version)}</div>`;
        }
        if (status.error) {
            html += `<div class="error">${esc(status.error)}</div>`;
        }
        if (status.password_required) {
            html += `<div><input type="password" class="password" placeholder="SSH password">
                <button ${busy ? 'disabled' : ''} onclick="adoptWithPassword(this)">Connect</button></div>`;
        }
        html += `<button ${busy ? 'disabled' : ''} onclick="adopt(this)">
            ${status.adopting ? 'Connecting...' : 'Connect'}</button></div>`;
        return html;
    }

    function render(state) {
        snapshot = state;
        const busy = state.busy;
        if (state.state === 'awaiting_code') {
            view.innerHTML = `<h2>Enter your setup code</h2>
                <p class="muted">It looks like VS-7K2M.</p>
                <input id="code" maxlength="7" placeholder="VS-XXXX" ${busy ? 'disabled' : ''}>
                ${state.error ? `<div class="error">${esc(state.error)}</div>` : ''}
                <button ${busy ? 'disabled' : ''} onclick="submitCode()">
                    ${busy ? 'Verifying...' : 'Continue'}</button>`;
        } else if (state.state === 'scanning') {
            view.innerHTML = `<h2>Scanning your network...</h2>
                <p class="muted">Looking for access points on your local network.</p>`;
        } else if (state.state === 'reviewing') {
            const count = state.devices.length;
            let html = `<h2>${count ? `Found ${count} access point${count > 1 ? 's' : ''}` : 'No access points found'}</h2>`;
            if (state.session) {
                html += `<p class="muted">Setting up: ${esc(state.session.site_name)}</p>`;
            }
            if (state.error) {
                html += `<div class="error">${esc(state.error)}</div>`;
            }
            html += state.devices.map(d => deviceCard(d, busy)).join('');
            html += `<button ${busy ? 'disabled' : ''} onclick="post('/api/scan')">Scan again</button>`;
            view.innerHTML = html;
        } else {
            const site = state.session ? ` for ${esc(state.session.site_name)}` : '';
            view.innerHTML = `<h2>You're all set!</h2>
                <p>Your access point is now connected${site}. You can close this window.</p>`;
        }
    }

    function submitCode() {
        post('/api/code', {code: document.getElementById('code').value});
    }

    function cardOf(button) {
        return button.closest('[data-device]');
    }

    function adopt(button) {
        post(`/api/devices/${cardOf(button).dataset.device}/adopt`, {});
    }

    function adoptWithPassword(button) {
        const card = cardOf(button);
        const password = card.querySelector('input.password').value;
        post(`/api/devices/${card.dataset.device}/adopt`, {password: password});
    }

    function connect() {
        const ws = new WebSocket(`ws://${location.host}/ws`);
        ws.onmessage = (event) => {
            const data = JSON.parse(event.data);
            if (data.type !== 'ping') render(data);
        };
        ws.onclose = () => setTimeout(connect, 2000);
    }

    fetch('/api/state').then(r => r.json()).then(render);
    connect();
</script>
</body>
</html>
"""
