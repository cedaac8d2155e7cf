"""
Feeder Dashboard Service
========================
REST + WebSocket front of the fault engine: telemetry ingestion, grid
state, analytics series, event log, operator controls and a live stream
of visual commands for map clients.
"""

import logging
from datetime import datetime
from typing import Dict, Optional

from fastapi import Body, FastAPI, HTTPException, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
import uvicorn

from config import DASHBOARD_CONFIG, LOGGING_CONFIG, TRANSPORT_CONFIG
from grid.fault_engine import FaultEngine
from grid.operator import OperatorConsole
from grid.registry import NodeRegistry
from grid.state import NetworkState
from monitoring.event_log import EventSink, Severity
from protocols.telemetry.commands import HttpCommandPublisher
from protocols.telemetry.normalizer import (
    MalformedTelemetry,
    normalize_pole_payload,
    normalize_substation,
    parse_pole_frame,
)
from protocols.telemetry.router import TelemetryRouter
from visual.commands import VisualCommandBus
from visual.map_model import MapModel
from visual.panel import DashboardPanel
from dashboard_service.websocket_manager import WebSocketManager

logging.basicConfig(
    level=getattr(logging, LOGGING_CONFIG["level"].upper()),
    format=LOGGING_CONFIG["format"]
)
logger = logging.getLogger(__name__)

VERSION = "1.0.0"

# ============================================================================
# Application Setup
# ============================================================================

app = FastAPI(title="Feeder Dashboard", version=VERSION)

app.add_middleware(
    CORSMiddleware,
    allow_origins=DASHBOARD_CONFIG["cors_origins"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Core components
registry = NodeRegistry()
state = NetworkState(registry)
ws_manager = WebSocketManager()
map_model = MapModel(registry)
visuals = VisualCommandBus([map_model, ws_manager.on_visual_command])
events = EventSink()
panel = DashboardPanel(state)
engine = FaultEngine(registry, state, visuals, events, ui=panel)
operator = OperatorConsole(engine, publisher=HttpCommandPublisher())
router = TelemetryRouter(engine)

state.subscribe(ws_manager.on_state_change)
events.add_listener(ws_manager.on_event)

# ============================================================================
# Pydantic Models
# ============================================================================

class SimulateFaultRequest(BaseModel):
    fault_type: Optional[str] = None

# ============================================================================
# Startup / Shutdown
# ============================================================================

@app.on_event("startup")
async def startup_event():
    logger.info("=" * 60)
    logger.info("FEEDER DASHBOARD STARTING")
    logger.info("=" * 60)
    await ws_manager.start_broadcasting()
    logger.info(f"   Nodes: {registry.chain}")
    logger.info(f"   REST API: http://{DASHBOARD_CONFIG['host']}:{DASHBOARD_CONFIG['port']}")
    logger.info(f"   WebSocket: ws://{DASHBOARD_CONFIG['host']}:{DASHBOARD_CONFIG['port']}/ws/grid")

@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Shutting down feeder dashboard...")
    await ws_manager.stop_broadcasting()

# ============================================================================
# Helpers
# ============================================================================

def _require_node(node_id: int):
    node = registry.get_node(node_id)
    if node is None:
        raise HTTPException(status_code=404, detail=f"Node {node_id} not found")
    return node

def _processed(record) -> Dict:
    if not engine.process(record):
        raise HTTPException(status_code=404, detail=f"Node {record.node_id} not found")
    return {
        "accepted": True,
        "record": record.to_dict(),
        "system_status": events.system_status.value,
    }

def _full_snapshot() -> Dict:
    return {
        "topology": registry.get_topology(),
        "state": state.snapshot(),
        "visuals": map_model.snapshot(),
        "events": events.to_dict(),
        "panel": panel.to_dict(),
    }

# ============================================================================
# Health & Status Endpoints
# ============================================================================

@app.get("/")
async def root():
    return {
        "name": "Feeder Dashboard API",
        "version": VERSION,
        "endpoints": ["/health", "/topology", "/nodes", "/analytics", "/events", "/visuals", "/ws/grid"],
    }

@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "version": VERSION,
        "system_status": events.system_status.value,
        "substation_online": state.substation_online,
        "records_processed": engine.stats["records_processed"],
        "websocket_clients": ws_manager.get_connection_count(),
        "timestamp": datetime.utcnow().isoformat()
    }

# ============================================================================
# Grid State Endpoints
# ============================================================================

@app.get("/topology")
async def get_topology():
    return registry.get_topology()

@app.get("/nodes")
async def get_nodes():
    return [
        {**node.to_dict(), "state": state.get_node_state(node.node_id).to_dict()}
        for node in registry.get_all_nodes()
    ]

@app.get("/nodes/{node_id}")
async def get_node(node_id: int):
    node = _require_node(node_id)
    return {**node.to_dict(), "state": state.get_node_state(node_id).to_dict()}

@app.get("/analytics")
async def get_analytics():
    return state.snapshot()["analytics"]

@app.get("/analytics/{node_id}")
async def get_node_analytics(node_id: int):
    _require_node(node_id)
    return {"node_id": node_id, **state.get_analytics(node_id).to_dict()}

@app.delete("/analytics")
async def clear_analytics():
    operator.clear_analytics()
    return {"message": "Analytics cleared"}

@app.get("/events")
async def get_events(limit: int = Query(100, ge=1, le=1000), severity: Optional[Severity] = None):
    entries = events.log.get_events(severity=severity, limit=limit)
    return {"count": len(entries), "events": [e.to_dict() for e in entries]}

@app.get("/alert")
async def get_alert():
    return {**events.alert.to_dict(), "system_status": events.system_status.value}

@app.get("/visuals")
async def get_visuals():
    return map_model.snapshot()

@app.get("/panel")
async def get_panel():
    return panel.to_dict()

# ============================================================================
# Telemetry Ingestion
# ============================================================================

@app.post("/telemetry/substation")
async def ingest_substation(payload: Dict = Body(...)):
    try:
        record = normalize_substation(payload)
    except MalformedTelemetry as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _processed(record)

@app.post("/telemetry/pole")
async def ingest_pole_frame(request: Request):
    frame = (await request.body()).decode("utf-8", errors="replace")
    try:
        record = parse_pole_frame(frame)
    except MalformedTelemetry as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _processed(record)

@app.post("/telemetry")
async def ingest_generic(payload: Dict = Body(...)):
    try:
        record = normalize_pole_payload(payload)
    except MalformedTelemetry as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _processed(record)

@app.post("/ingest/{topic:path}")
async def ingest_raw(topic: str, request: Request):
    """Raw transport message routed by topic"""
    if topic not in TRANSPORT_CONFIG["topics"].values():
        raise HTTPException(status_code=404, detail=f"Unknown topic {topic}")
    body = await request.body()
    if not router.handle(topic, body):
        raise HTTPException(status_code=400, detail=f"Message on {topic} was not applied")
    return {"accepted": True, "topic": topic, "system_status": events.system_status.value}

# ============================================================================
# Operator Controls
# ============================================================================

@app.post("/control/reset")
async def control_reset():
    operator.reset()
    return {"message": "System reset", "system_status": events.system_status.value}

@app.post("/control/substation/on")
async def control_substation_on():
    operator.turn_on_substation()
    return {"message": "Turn on substation command sent", "token": TRANSPORT_CONFIG["recharge_token"]}

@app.post("/control/select/{node_id}")
async def control_select(node_id: int):
    _require_node(node_id)
    operator.select_node(node_id)
    return panel.to_dict()

@app.post("/control/simulate-fault")
async def control_simulate_fault(request: Optional[SimulateFaultRequest] = None):
    record = operator.simulate_fault(request.fault_type if request else None)
    return {
        "record": record.to_dict(),
        "system_status": events.system_status.value,
        "alert": events.alert.to_dict(),
    }

@app.post("/control/sample-data")
async def control_sample_data():
    records = operator.generate_sample_data()
    return {"count": len(records), "records": [r.to_dict() for r in records]}

# ============================================================================
# WebSocket Endpoint
# ============================================================================

@app.websocket("/ws/grid")
async def websocket_grid(websocket: WebSocket):
    """Full snapshot on connect, then visual commands and state changes"""
    await ws_manager.connect(websocket)
    await ws_manager.send_full_state_snapshot(websocket, _full_snapshot())

    try:
        while True:
            data = await websocket.receive_text()
            logger.debug(f"Received from dashboard client: {data}")
    except WebSocketDisconnect:
        ws_manager.disconnect(websocket)
    except Exception as e:
        logger.error(f"WebSocket error: {e}")
        ws_manager.disconnect(websocket)

# ============================================================================
# Main Entry Point
# ============================================================================

if __name__ == "__main__":
    uvicorn.run(
        app,
        host=DASHBOARD_CONFIG["host"],
        port=DASHBOARD_CONFIG["port"],
        log_level=LOGGING_CONFIG["level"].lower()
    )
