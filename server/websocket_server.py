"""
websocket_server.py
-------------------
Viewer channel for a Scene.

Clients receive the static scene definition on connect and a state update
every ``update_interval`` seconds.  They may send JSON requests:

    {"type": "get_definition"}
    {"type": "set_joints", "values": {"<joint name>": <value>, ...}}
    {"type": "solve_ik", "link": "<link id>", "target": [x, y, z],
     "max_iterations": <int, optional>, "tolerance": <float, optional>}

Each request gets exactly one JSON reply; malformed requests get
``{"type": "error", "message": ...}``.
"""
import asyncio
import json
import math
from typing import Any

import websockets

from scene.scene import Scene


def _error(message: str) -> dict[str, Any]:
    return {"type": "error", "message": message}


class WebSocketServer:
    def __init__(self, scene: Scene, host: str = "localhost", port: int = 8765,
                 update_interval: float = 0.05):
        """
        :param scene: Scene object to stream state from
        :param host: WebSocket server host
        :param port: WebSocket server port
        :param update_interval: How often to send state updates (in seconds)
        """
        self.scene = scene
        self.host = host
        self.port = port
        self.update_interval = update_interval
        self.clients: set = set()

    def handle_message(self, raw: str) -> dict[str, Any]:
        """Decode one client request, apply it to the scene and build the reply."""
        try:
            message = json.loads(raw)
        except (json.JSONDecodeError, TypeError) as e:
            return _error(f"Invalid JSON: {e}")
        if not isinstance(message, dict):
            return _error("Message must be a JSON object")

        kind = message.get("type")
        if kind == "get_definition":
            return self.scene.static_definition()
        if kind == "set_joints":
            return self._set_joints(message)
        if kind == "solve_ik":
            return self._solve_ik(message)
        return _error(f"Unknown message type: {kind!r}")

    def _set_joints(self, message: dict[str, Any]) -> dict[str, Any]:
        values = message.get("values")
        if not isinstance(values, dict):
            return _error("'values' must be an object of joint name to value")
        try:
            values = {str(name): float(value) for name, value in values.items()}
        except (ValueError, TypeError) as e:
            return _error(f"Invalid joint value: {e}")
        bad = sorted(name for name, value in values.items() if not math.isfinite(value))
        if bad:
            return _error(f"Joint values must be finite: {', '.join(bad)}")

        changed = self.scene.apply_joint_values(values)
        return {"type": "joint_values", "values": changed}

    def _solve_ik(self, message: dict[str, Any]) -> dict[str, Any]:
        try:
            link_id = str(message["link"])
            target = [float(v) for v in message["target"]]
            if len(target) != 3:
                raise ValueError("'target' must have three coordinates")
            if not all(math.isfinite(v) for v in target):
                raise ValueError("'target' coordinates must be finite")
            options = {}
            if "max_iterations" in message:
                options["max_iterations"] = int(message["max_iterations"])
            if "tolerance" in message:
                options["tolerance"] = float(message["tolerance"])
                if not math.isfinite(options["tolerance"]):
                    raise ValueError("'tolerance' must be finite")
        except (KeyError, ValueError, TypeError, OverflowError) as e:
            return _error(f"Invalid solve request: {e}")

        result = self.scene.solve_for_target(link_id, target, **options)
        return {
            "type": "ik_result",
            "link": link_id,
            "success": result.success,
            "iterations": result.iterations,
            "joints": result.joint_values,
        }

    async def handler(self, websocket):
        print(f"[ws] Client connected: {websocket.remote_address}")
        self.clients.add(websocket)

        # Send scene definition on initial connection
        try:
            await websocket.send(json.dumps(self.scene.static_definition()))
            print(f"[ws] Sent scene definition to {websocket.remote_address}")
        except websockets.ConnectionClosed:
            self.clients.discard(websocket)
            print(f"[ws] Client disconnected during scene definition send: {websocket.remote_address}")
            return

        try:
            async for raw in websocket:
                await websocket.send(json.dumps(self.handle_message(raw)))
        except websockets.ConnectionClosed:
            pass
        finally:
            self.clients.discard(websocket)
            print(f"[ws] Client disconnected: {websocket.remote_address}")

    async def broadcast_state(self):
        """Continuously sends the scene state to all connected clients."""
        while True:
            if self.clients:
                message = json.dumps(self.scene.get_state())
                # Send to each client, removing any that have disconnected
                disconnected = set()
                for client in list(self.clients):
                    try:
                        await client.send(message)
                    except websockets.ConnectionClosed:
                        disconnected.add(client)
                self.clients -= disconnected
            await asyncio.sleep(self.update_interval)

    async def start(self):
        async with websockets.serve(self.handler, self.host, self.port):
            print(f"[ws] WebSocket server started on ws://{self.host}:{self.port}")
            await self.broadcast_state()

    def run(self):
        asyncio.run(self.start())
