"""
main.py
-------
Entry point for the link-tree kinematics viewer backend.

Loads a scene file (or builds the default three-axis arm), then serves it
over WebSocket until Ctrl-C or SIGTERM.

Run with:
    python main.py
    python main.py --scene my_arm.json --host 0.0.0.0 --port 8765
    python main.py --max-iterations 24 --tolerance 0.001
"""

import argparse
import signal
import sys
import threading
import time

from devices import build_three_axis_robot
from kinematics import KinematicTree
from kinematics.inverse import MAX_ITERATIONS, TOLERANCE
from scene import Scene
from server import WebSocketServer


def main() -> None:
    parser = argparse.ArgumentParser(description="Link-tree kinematics server")
    parser.add_argument("--scene",          default=None,           help="Scene JSON file (default: built-in three-axis arm)")
    parser.add_argument("--host",           default="localhost",    help="Bind address (default: localhost)")
    parser.add_argument("--port",           default=8765,           type=int,   help="WebSocket port (default: 8765)")
    parser.add_argument("--interval",       default=0.05,           type=float, help="State broadcast interval in s (default: 0.05)")
    parser.add_argument("--max-iterations", default=MAX_ITERATIONS, type=int,   help=f"IK sweeps per solve (default: {MAX_ITERATIONS})")
    parser.add_argument("--tolerance",      default=TOLERANCE,      type=float, help=f"IK tolerance in m (default: {TOLERANCE})")
    args = parser.parse_args()

    if args.scene:
        try:
            tree = KinematicTree.from_file(args.scene)
        except (OSError, ValueError) as e:
            print(f"[main] Cannot load scene '{args.scene}': {e}")
            sys.exit(1)
    else:
        tree = build_three_axis_robot()

    scene = Scene(tree, max_iterations=args.max_iterations, tolerance=args.tolerance)

    ws_server = WebSocketServer(scene, host=args.host, port=args.port, update_interval=args.interval)
    ws_thread = threading.Thread(target=ws_server.run, daemon=True)
    ws_thread.start()

    print(f"  Scene — links: {[link.name for link in tree.links()]}")
    print(f"  Joints — {scene.joint_values()}")
    print(f"  IK — {args.max_iterations} sweeps  |  tolerance: {args.tolerance} m")
    print(f"  WebSocket — ws://{args.host}:{args.port}")
    print("  Press Ctrl-C to stop.\n")

    def _shutdown(sig, frame) -> None:
        print("\n[main] Shutting down …")
        sys.exit(0)

    signal.signal(signal.SIGINT,  _shutdown)
    signal.signal(signal.SIGTERM, _shutdown)

    while True:
        time.sleep(1)


if __name__ == "__main__":
    main()
