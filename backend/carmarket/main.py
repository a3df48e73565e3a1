import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware
from carmarket.core.config import (
    API_PREFIX,
    CORS_ORIGIN,
    DATABASE_NAME,
    FIRST_ADMIN_EMAIL,
    FIRST_ADMIN_PASSWORD,
    FIRST_ADMIN_USERNAME,
    LOG_LEVEL,
)
from carmarket.core.database import create_client, ensure_indexes
from carmarket.core.errors import register_exception_handlers
from carmarket.core.security import hash_password
from carmarket.api import auth, users, cars
from carmarket.repositories.users import UserRepository

logging.basicConfig(
    level=LOG_LEVEL,
    format="[%(asctime)s] %(levelname)s in %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)
logger = logging.getLogger(__name__)

# QUIET noisy libraries at or above ERROR:
logging.getLogger("pymongo").setLevel(logging.ERROR)
logging.getLogger("passlib").setLevel(logging.ERROR)
logging.getLogger("urllib3").setLevel(logging.ERROR)


async def seed_first_admin(user_repo: UserRepository):
    if not (FIRST_ADMIN_EMAIL and FIRST_ADMIN_USERNAME and FIRST_ADMIN_PASSWORD):
        logger.info("No FIRST_ADMIN_* environment vars set. Skipping admin seed.")
        return

    if await user_repo.get_by_email(FIRST_ADMIN_EMAIL):
        logger.info(f"Admin user already exists for {FIRST_ADMIN_EMAIL}, skipping seed.")
        return

    admin = await user_repo.create({
        "username": FIRST_ADMIN_USERNAME,
        "email": FIRST_ADMIN_EMAIL,
        "role": "admin",
        "hashed_password": hash_password(FIRST_ADMIN_PASSWORD),
    })
    logger.info("First admin created: id=%s username=%s", admin.id, admin.username)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # One Motor client per process; handlers reach it through get_database().
    app.state.mongo_client = create_client()
    app.state.db = app.state.mongo_client[DATABASE_NAME]
    await ensure_indexes(app.state.db)
    await seed_first_admin(UserRepository(app.state.db))
    logger.info("Connected to MongoDB database %s", DATABASE_NAME)
    yield
    app.state.mongo_client.close()


app = FastAPI(title="Car Marketplace API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in CORS_ORIGIN.split(",")],
    allow_credentials=CORS_ORIGIN != "*",
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(auth.router, prefix=f"{API_PREFIX}/auth", tags=["Auth"])
app.include_router(users.router, prefix=f"{API_PREFIX}/users", tags=["Users"])
app.include_router(cars.router, prefix=f"{API_PREFIX}/cars", tags=["Cars"])


@app.get("/health")
def health_check():
    logger.debug("Health check endpoint called.")
    return {
        "success": True,
        "message": "Server is running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
