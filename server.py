import asyncio
import json
import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Dict, Optional

import uvicorn
from fastapi import FastAPI, WebSocket, WebSocketDisconnect, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from config import settings, liveness as liveness_config, setup_logging
from core.checkin import (
    AttendanceService,
    AlreadyCheckedIn,
    LivenessNotVerified,
    OutsideCheckInWindow,
)
from core.frame_source import PushFrameSource
from core.liveness import LivenessDetector

logger = logging.getLogger("checkin.server")


# ============================================================================
# CONFIG
# ============================================================================
def load_env_config(env_path=settings.ENV_FILE):
    config = {
        "HOST": settings.SERVER_HOST,
        "PORT": str(settings.SERVER_PORT),
        "FACE_MODEL_SOURCE": liveness_config.FACE_MODEL_SOURCE,
        "LOG_LEVEL": settings.LOG_LEVEL,
    }
    if os.path.exists(env_path):
        with open(env_path, 'r') as f:
            for line in f:
                line = line.strip()
                if not line or line.startswith('#'): continue
                if '=' in line:
                    key, val = line.split('=', 1)
                    config[key.strip()] = val.strip().strip('"').strip("'")
    return config

CONF = load_env_config()

# ============================================================================
# DATA MODELS
# ============================================================================
class CheckInRequest(BaseModel):
    user_id: str
    role: str
    status: str = "present"
    notes: Optional[str] = None
    permit_file: Optional[str] = None

# ============================================================================
# CHECK-IN SESSIONS (one detector per WebSocket)
# ============================================================================
class CheckInSession:
    """
    One WebSocket check-in: pushed frames, its own detector, state forwarding.

    The pending check-in photo is kept per user_id in state.verified_photos,
    so two open sessions for the same user share (and overwrite or clear) one
    photo. The photo is the latest pushed frame when the verified state is
    published, which may be a frame newer than the one that completed the turn.
    """

    def __init__(self, user_id: str, detector: LivenessDetector):
        self.user_id = user_id
        self.source = PushFrameSource()
        self.detector = detector
        # Only the newest state is forwarded; slow clients skip intermediate ones
        self.latest_state = None
        self.changed = asyncio.Event()
        self.photo_taken = False
        self.unsubscribe = detector.subscribe(self.on_state)

    def on_state(self, det_state):
        # Keep the frame that completed the head turn as check-in photo
        if det_state.head_turn_detected and not self.photo_taken:
            frame = self.source.latest_frame
            if frame is not None:
                state.verified_photos[self.user_id] = frame.copy()
                self.photo_taken = True
                logger.info("Liveness verified for %s", self.user_id)
        self.latest_state = det_state
        self.changed.set()

    async def start(self):
        await self.detector.load_models()
        if self.detector.is_model_loaded:
            self.detector.start_detection(self.source)

    def handle_command(self, command: dict):
        action = command.get("action")
        if action == "reset":
            self.detector.reset_detection()
            self.photo_taken = False
            state.verified_photos.pop(self.user_id, None)
            self.detector.start_detection(self.source)
        elif action == "stop":
            self.detector.stop_detection()
        elif action == "pause":
            self.source.pause()
        elif action == "resume":
            self.source.resume()
        else:
            logger.warning("Unknown command from %s: %r", self.user_id, action)
            return False
        return True

    async def aclose(self):
        self.unsubscribe()
        self.source.close()
        await self.detector.aclose()


async def forward_updates(websocket: WebSocket, session: CheckInSession):
    while True:
        await session.changed.wait()
        session.changed.clear()
        det_state = session.latest_state
        await websocket.send_json({"type": "state", **det_state.to_dict()})

# ============================================================================
# SYSTEM STATE
# ============================================================================
class SystemState:
    def __init__(self):
        self.attendance = None
        self.model_loader = None
        self.detector_options = {}
        self.verified_photos: Dict[str, object] = {}
        self.sessions: Dict[WebSocket, CheckInSession] = {}

    def setup(self):
        if self.attendance is None:
            self.attendance = AttendanceService()

    def create_detector(self):
        return LivenessDetector(
            model_source=CONF["FACE_MODEL_SOURCE"],
            model_loader=self.model_loader,
            **self.detector_options,
        )

state = SystemState()

@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(CONF["LOG_LEVEL"])
    state.setup()
    logger.info("Check-in server ready")
    yield
    for session in list(state.sessions.values()):
        await session.aclose()
    state.sessions.clear()

app = FastAPI(lifespan=lifespan)
app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_credentials=True, allow_methods=["*"], allow_headers=["*"])

# ============================================================================
# API ENDPOINTS
# ============================================================================

@app.websocket("/ws/liveness")
async def liveness_endpoint(websocket: WebSocket, user_id: str):
    await websocket.accept()
    session = CheckInSession(user_id, state.create_detector())
    state.sessions[websocket] = session
    sender = asyncio.create_task(forward_updates(websocket, session))
    try:
        await session.start()
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            if message.get("bytes") is not None:
                session.source.push(message["bytes"])
            elif message.get("text"):
                try:
                    command = json.loads(message["text"])
                except ValueError:
                    logger.warning("Invalid command payload from %s", user_id)
                    continue
                if isinstance(command, dict):
                    session.handle_command(command)
    except WebSocketDisconnect:
        pass
    finally:
        sender.cancel()
        await asyncio.gather(sender, return_exceptions=True)
        state.sessions.pop(websocket, None)
        await session.aclose()
        logger.info("Liveness session closed for %s", user_id)

@app.get("/api/health")
async def health(): return {"status": "ok"}

@app.get("/api/checkin/window")
async def checkin_window(role: str):
    try:
        window = state.attendance.window_for(role)
    except ValueError as e:
        raise HTTPException(422, str(e))
    return {"role": role, **window.to_dict(), "open": window.contains(state.attendance.clock())}

@app.post("/api/attendance")
async def check_in(req: CheckInRequest):
    photo = state.verified_photos.get(req.user_id) if req.status == "present" else None
    try:
        record = state.attendance.check_in(
            req.user_id, req.role, req.status,
            notes=req.notes, photo=photo, permit_file=req.permit_file,
        )
    except OutsideCheckInWindow as e:
        raise HTTPException(403, str(e))
    except AlreadyCheckedIn as e:
        raise HTTPException(409, str(e))
    except LivenessNotVerified as e:
        raise HTTPException(400, str(e))
    except ValueError as e:
        raise HTTPException(422, str(e))

    state.verified_photos.pop(req.user_id, None)
    return {"status": "success", "record": record}

@app.get("/api/attendance")
async def get_attendance(date: Optional[str] = None):
    if date is None:
        date = state.attendance.today()
    else:
        try:
            datetime.strptime(date, '%Y-%m-%d')
        except ValueError:
            raise HTTPException(422, "date must be YYYY-MM-DD")
    return state.attendance.attendance_log.get_day(date)

@app.get("/api/stats")
async def get_stats():
    counts = state.attendance.attendance_log.get_today_count(state.attendance.today())
    return {
        "total_today": sum(counts.values()),
        "by_status": counts,
        "active_sessions": len(state.sessions),
        "verified_pending": len(state.verified_photos),
    }

if __name__ == "__main__":
    uvicorn.run(app, host=CONF["HOST"], port=int(CONF["PORT"]))
