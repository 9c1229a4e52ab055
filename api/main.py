import logging
import os
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Dict, Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

# Allow importing the bridge package from a source checkout
ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from src.words_bridge import __version__  # type: ignore
from src.words_bridge.bridge import BridgeResponse, CommandBridge  # type: ignore
from src.words_bridge.commands import MAX_PORT  # type: ignore
from src.words_bridge.config import BridgeConfig  # type: ignore
from src.words_bridge.logging_utils import configure_logging  # type: ignore
from src.words_bridge.settings_store import ConnectionSettings, SettingsStore  # type: ignore

CONFIG_PATH = os.getenv("WORDS_BRIDGE_CONFIG")

logger = logging.getLogger("words_bridge.api")

config: Optional[BridgeConfig] = None
bridge: Optional[CommandBridge] = None
settings_store: Optional[SettingsStore] = None


def _init_services() -> None:
    """Initialize shared services once for the API process."""
    global config, bridge, settings_store
    if config and bridge and settings_store:
        return

    config = BridgeConfig(CONFIG_PATH)
    bridge = CommandBridge(config)
    settings_store = SettingsStore(ConnectionSettings(host=config.default_host, port=config.default_port))
    logger.info("Bridge ready: tool=%s", " ".join(config.tool_command))


@asynccontextmanager
async def lifespan(_: FastAPI):
    configure_logging(level="INFO")
    _init_services()
    yield


app = FastAPI(title="ProPresenter Words Bridge API", version=__version__, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_bridge() -> CommandBridge:
    _init_services()
    return bridge


def get_settings_store() -> SettingsStore:
    _init_services()
    return settings_store


class BridgeResponseModel(BaseModel):
    success: bool
    message: str
    file_path: Optional[str] = None

    @classmethod
    def from_response(cls, response: BridgeResponse) -> "BridgeResponseModel":
        return cls(**response.to_dict())


class ExportPayload(BaseModel):
    playlist_id: str
    export_format: str = "default"
    host: Optional[str] = None
    port: Optional[int] = Field(default=None, ge=0, le=MAX_PORT)


class SettingsPayload(BaseModel):
    host: Optional[str] = None
    port: Optional[int] = Field(default=None, ge=0, le=MAX_PORT)
    export_format: Optional[str] = None
    last_playlist_id: Optional[str] = None


def _connection(store: SettingsStore, host: Optional[str], port: Optional[int]):
    """Fill in host/port from saved settings when the caller leaves them out."""
    saved = store.load()
    return host or saved.host, port if port is not None else saved.port


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "healthy", "version": __version__}


@app.post("/api/export", response_model=BridgeResponseModel)
def export_playlist(
    req: ExportPayload,
    bridge: CommandBridge = Depends(get_bridge),
    store: SettingsStore = Depends(get_settings_store),
) -> BridgeResponseModel:
    host, port = _connection(store, req.host, req.port)
    response = bridge.export(req.playlist_id, req.export_format, host, port)
    if response.success:
        store.update(last_playlist_id=req.playlist_id)
    return BridgeResponseModel.from_response(response)


@app.get("/api/playlists", response_model=BridgeResponseModel)
def list_playlists(
    host: Optional[str] = None,
    port: Optional[int] = Query(default=None, ge=0, le=MAX_PORT),
    bridge: CommandBridge = Depends(get_bridge),
    store: SettingsStore = Depends(get_settings_store),
) -> BridgeResponseModel:
    host, port = _connection(store, host, port)
    return BridgeResponseModel.from_response(bridge.list_playlists(host, port))


@app.get("/api/status", response_model=BridgeResponseModel)
def connection_status(
    host: Optional[str] = None,
    port: Optional[int] = Query(default=None, ge=0, le=MAX_PORT),
    bridge: CommandBridge = Depends(get_bridge),
    store: SettingsStore = Depends(get_settings_store),
) -> BridgeResponseModel:
    host, port = _connection(store, host, port)
    return BridgeResponseModel.from_response(bridge.status(host, port))


@app.get("/api/libraries", response_model=BridgeResponseModel)
def list_libraries(
    host: Optional[str] = None,
    port: Optional[int] = Query(default=None, ge=0, le=MAX_PORT),
    bridge: CommandBridge = Depends(get_bridge),
    store: SettingsStore = Depends(get_settings_store),
) -> BridgeResponseModel:
    host, port = _connection(store, host, port)
    return BridgeResponseModel.from_response(bridge.libraries(host, port))


@app.get("/api/settings")
def get_settings(store: SettingsStore = Depends(get_settings_store)) -> Dict[str, object]:
    return store.load().to_dict()


@app.put("/api/settings")
def update_settings(
    payload: SettingsPayload,
    store: SettingsStore = Depends(get_settings_store),
) -> Dict[str, object]:
    if payload.host is not None and not payload.host.strip():
        raise HTTPException(status_code=400, detail="host must not be empty")
    return store.update(**payload.model_dump()).to_dict()
