import logging
import os
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler
from typing import Optional

from fastapi import FastAPI

from .audio import build_speaker
from .bank import ItemBank
from .config import settings
from .database import init_db
from .generator import QuestionGeneratorFactory
from .log_handler import SQLiteHandler
from .router import router
from .session import GameEngine
from .storage import HistoryRepository, OrderedWriter, build_store


# --- Logging Setup ---
def setup_logging():
    logger = logging.getLogger("engpower")
    logger.setLevel(logging.INFO)

    if not os.path.exists(settings.LOG_DIR):
        os.makedirs(settings.LOG_DIR, exist_ok=True)
    log_path = os.path.abspath(os.path.join(settings.LOG_DIR, settings.LOG_FILE))

    # At most one file handler, pointing at the configured path.
    for handler in list(logger.handlers):
        if isinstance(handler, RotatingFileHandler) and handler.baseFilename != log_path:
            logger.removeHandler(handler)
            handler.close()
    if not any(isinstance(h, RotatingFileHandler) for h in logger.handlers):
        file_handler = RotatingFileHandler(log_path, maxBytes=5_000_000, backupCount=3)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(levelname)s - %(name)s - %(message)s")
        )
        logger.addHandler(file_handler)

    if settings.LOG_TO_DB and not any(
        isinstance(h, SQLiteHandler) for h in logger.handlers
    ):
        init_db()
        logger.addHandler(SQLiteHandler())

    # Also configure root logger to see logs from other libraries
    logging.basicConfig(level=logging.INFO)


def build_engine() -> GameEngine:
    """Wires the engine from settings. Raises BankError on an unusable bank."""
    bank = ItemBank.from_csv(settings.BANK_FILE)
    store = build_store(settings.STORE_BACKEND)
    repository = HistoryRepository(store, writer=OrderedWriter(store))
    return GameEngine(
        bank=bank,
        generator=QuestionGeneratorFactory.create(settings.GENERATOR_MODE, bank),
        repository=repository,
        speaker=build_speaker(settings.TTS_ENGINE),
    )


# --- Lifecycle ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    engine: GameEngine = app.state.engine
    engine.load()
    engine.warm_up()
    yield
    engine.close()
    writer = engine.repository.writer
    if writer is not None:
        writer.close()


# --- App Factory ---
def create_app(engine: Optional[GameEngine] = None) -> FastAPI:
    setup_logging()
    app = FastAPI(
        title=settings.PROJECT_NAME,
        debug=settings.DEBUG,
        lifespan=lifespan,
        root_path=settings.ROOT_PATH,
    )
    app.state.engine = engine or build_engine()

    app.include_router(router)

    return app
