# client/rep_demo.py

import argparse
import copy
import json
import logging
import os
import sys
from queue import Queue
from threading import Thread
from typing import Any, Dict, Iterator, List, Optional, Tuple

import dotenv

from .api import FormCoachClient
from .exercise_detector import ExerciseType
from .pose_utils import Landmark, landmarks_from_dicts
from .session import ExerciseSession
from .voice import VoiceManager

dotenv.load_dotenv()

# Evaluation backend (FastAPI) endpoint
DEFAULT_WEBHOOK_URL = os.getenv("FORMCOACH_WEBHOOK_URL", "http://127.0.0.1:8000/evaluate")

EXERCISE_OPTIONS = ["auto", "pushup", "situp", "squat"]

logger = logging.getLogger(__name__)


def parse_frame_line(line: str) -> Tuple[Optional[List[Landmark]], Optional[float]]:
    """
    One JSON line -> (landmarks, timestamp).

    Accepts either a bare list of landmarks or an object with "landmarks"
    and an optional "timestamp" (seconds). Blank or broken lines give
    (None, None) so a gappy stream keeps flowing.
    """
    line = line.strip()
    if not line:
        return None, None
    try:
        data = json.loads(line)
    except json.JSONDecodeError:
        logger.warning("Skipping malformed frame line")
        return None, None

    timestamp = None
    if isinstance(data, dict):
        timestamp = data.get("timestamp")
        data = data.get("landmarks") or []
    try:
        return landmarks_from_dicts(data), timestamp
    except (AttributeError, KeyError, TypeError, ValueError):
        logger.warning("Skipping frame with unreadable landmarks")
        return None, None


def read_frames(stream) -> Iterator[Tuple[Optional[List[Landmark]], Optional[float]]]:
    for line in stream:
        yield parse_frame_line(line)


# ---------- Background evaluation worker ----------

def evaluation_worker(client: FormCoachClient, jobs: Queue):
    """
    Sends queued session payloads to the backend so frame ingestion never
    waits on the network.
    """
    while True:
        payload = jobs.get()
        try:
            feedback = client.send_for_evaluation(payload)
            if feedback:
                print(f"AI evaluation: score={feedback.get('overall_score')} - {feedback.get('comment', '')}")
            else:
                print("AI evaluation failed:", client.last_error)
        except Exception:
            logger.exception("Evaluation worker failed on a payload")
        finally:
            jobs.task_done()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Replay a recorded landmark stream through the rep counter and form scorer."
    )
    parser.add_argument("input", nargs="?", default="-",
                        help="JSON-lines file of landmark frames ('-' for stdin)")
    parser.add_argument("--exercise", choices=EXERCISE_OPTIONS, default="auto")
    parser.add_argument("--target", type=int, default=0, help="target rep count (0 = none)")
    parser.add_argument("--fps", type=int, default=30)
    parser.add_argument("--user-id", default="anonymous")
    parser.add_argument("--webhook", default=DEFAULT_WEBHOOK_URL,
                        help="evaluation endpoint URL")
    parser.add_argument("--evaluate", action="store_true",
                        help="send the session payload for AI evaluation at end of stream")
    parser.add_argument("--evaluate-every", type=int, default=0,
                        help="also send the payload every N recorded reps")
    parser.add_argument("--voice", action="store_true", help="speak counts and milestones")
    parser.add_argument("--verbose", "-v", action="store_true")
    return parser


def run(args: argparse.Namespace, stream) -> Optional[Dict[str, Any]]:
    voice = None
    if args.voice:
        voice = VoiceManager()
        voice.start()

    exercise = None if args.exercise == "auto" else ExerciseType(args.exercise)
    session = ExerciseSession(
        exercise=exercise,
        on_event=voice.handle_event if voice else None,
        fps=args.fps,
        user_id=args.user_id,
    )
    if args.target:
        session.set_target(args.target)

    jobs: Optional[Queue] = None
    if args.evaluate or args.evaluate_every:
        client = FormCoachClient(args.webhook)
        jobs = Queue()
        Thread(target=evaluation_worker, args=(client, jobs), daemon=True).start()

    for landmarks, timestamp in read_frames(stream):
        result = session.process_frame(landmarks, timestamp)
        if result is None or result.completed_rep is None:
            continue

        rep = result.completed_rep
        print(f"=== REP COMPLETED ({result.exercise.value}, rep={rep['rep_index']}, "
              f"{rep['duration_sec']:.2f}s) count={result.count} events={rep['events']}")

        if jobs is not None and args.evaluate_every and rep["rep_index"] % args.evaluate_every == 0:
            # snapshot: later reps keep mutating the live session
            jobs.put(copy.deepcopy(session.generate_payload()))

    payload = session.generate_payload()
    if payload is None:
        print("No completed reps recorded.")
    else:
        print(json.dumps(payload["overall_stats"], indent=2))
        print("Highlights:", payload["highlights"])
        if jobs is not None and args.evaluate:
            jobs.put(payload)

    if jobs is not None:
        jobs.join()
    return payload


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.input == "-":
        run(args, sys.stdin)
    else:
        with open(args.input, encoding="utf-8") as f:
            run(args, f)
    return 0


if __name__ == "__main__":
    sys.exit(main())
