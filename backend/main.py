import logging

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from backend.auth.rate_limit import auth_rate_limiter
from backend.core import config
from backend.core.body_limit import BodySizeLimitMiddleware
from backend.core.logging_config import setup_logging
from backend.database import Base, engine, ensure_portal_schema
from backend.models import attendance, student, teacher, user  # noqa: F401
from backend.routes import auth_routes, student_routes, teacher_routes

setup_logging()
config.validate_runtime_config()

app = FastAPI(title='School Portal API')

app.add_middleware(BodySizeLimitMiddleware, max_body_bytes=config.MAX_BODY_BYTES)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[config.CORS_ALLOWED_ORIGIN],
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

logger = logging.getLogger(__name__)


@app.on_event('startup')
def initialize_database() -> None:
    try:
        Base.metadata.create_all(bind=engine)
        ensure_portal_schema()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')


@app.get('/')
def root():
    return {'status': 'School Portal API Running'}


app.include_router(
    auth_routes.router,
    prefix='/api/auth',
    dependencies=[Depends(auth_rate_limiter)],
)
app.include_router(student_routes.router, prefix='/api/student')
app.include_router(teacher_routes.router, prefix='/api/teacher')


if __name__ == '__main__':
    import uvicorn

    logger.info('Server is running on port %s', config.PORT)
    uvicorn.run(app, host=config.HOST, port=config.PORT)
