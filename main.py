import logging

from dotenv import load_dotenv

# Load environment variables from .env file before the package reads them
load_dotenv()

from fastapi import FastAPI  # noqa: E402
from fastapi.middleware.cors import CORSMiddleware  # noqa: E402

from issue_ledger import config  # noqa: E402
from issue_ledger.database.config import engine, Base  # noqa: E402
from issue_ledger.middleware.timing import timing_middleware  # noqa: E402
from issue_ledger.routes.issues import router as issues_router  # noqa: E402
from contextlib import asynccontextmanager  # noqa: E402

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: Create the ledger table when the SQL backend is in use
    if config.LEDGER_BACKEND == "sql":
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    yield

    # Shutdown: Dispose of the engine
    await engine.dispose()

app = FastAPI(lifespan=lifespan)

app.middleware("http")(timing_middleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s | %(name)s | %(message)s",
)

app.include_router(issues_router)
