import logging
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import List, Optional, Union

import bcrypt
import uvicorn
from fastapi import BackgroundTasks, Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt

import schemas
from config import Settings, get_settings
from logging_config import configure_logging
from sql_store import SqlStore
from store import STATUS_PUBLISHED, Article, MemoryStore, User, UsernameTakenError

Store = Union[MemoryStore, SqlStore]

settings = get_settings()
configure_logging(settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="api/user/login")

HOME_TITLE = "My Blog"
HOME_ARTICLE_COUNT = 5


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))


def seed_demo_data(store: Store) -> None:
    # only into an empty store
    if store.count_users() > 0:
        return
    admin = store.create_user(
        User(
            username="admin",
            password=hash_password("123456"),
            email="admin@example.com",
            nickname="Administrator",
        )
    )
    store.create_article(
        Article(
            title="Welcome to my blog",
            content="This is my personal blog, where I write about life and share technical notes. Thanks for visiting!",
            slug="welcome-to-my-blog",
            category="Blog",
            tags="blog,Python,FastAPI",
            status=STATUS_PUBLISHED,
            user_id=admin.id,
        )
    )
    logger.info("Demo data created")


def build_store(config: Settings) -> Store:
    if config.database_url:
        logger.info("Using the SQL store (env=%s)", config.environment)
        store: Store = SqlStore.from_url(config.database_url)
    else:
        logger.info("DATABASE_URL is not set, using the in-memory store (env=%s)", config.environment)
        store = MemoryStore()
    if config.seed_demo_data:
        seed_demo_data(store)
    return store


# One store per process, shared by every request
@lru_cache(maxsize=1)
def get_store() -> Store:
    return build_store(get_settings())


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=15))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.jwt_algorithm)


def get_current_user(token: str = Depends(oauth2_scheme), store: Store = Depends(get_store)) -> User:
    credentials_exception = HTTPException(
        status_code=401,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
        user_id = int(payload.get("sub"))
    except (JWTError, TypeError, ValueError):
        raise credentials_exception

    user = store.get_user(user_id)
    if user is None:
        raise credentials_exception
    return user


def ok(data, msg: str = "success") -> dict:
    return {"code": 0, "msg": msg, "data": data}


def get_owned_article(article_id: int, current_user: User, store: Store) -> Article:
    article = store.get_article(article_id)
    if article is None:
        raise HTTPException(status_code=404, detail="Article not found")
    if article.user_id != current_user.id:
        raise HTTPException(status_code=403, detail="Not authorized to modify this article")
    return article


@app.get("/", response_model=schemas.Envelope[schemas.HomeData])
def home(store: Store = Depends(get_store)):
    articles = store.list_articles(HOME_ARTICLE_COUNT, 0, STATUS_PUBLISHED)
    return ok({"title": HOME_TITLE, "articles": articles})


@app.get("/api/article/", response_model=schemas.Envelope[List[schemas.Article]])
def list_articles(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: str = "",
    store: Store = Depends(get_store),
):
    return ok(store.list_articles(limit, (page - 1) * limit, status))


@app.get("/api/article/{article_id}", response_model=schemas.Envelope[schemas.Article])
def get_article(article_id: int, background_tasks: BackgroundTasks, store: Store = Depends(get_store)):
    article = store.get_article(article_id)
    if article is None:
        raise HTTPException(status_code=404, detail="Article not found")
    background_tasks.add_task(store.increase_article_views, article_id)
    return ok(article)


@app.post("/api/article/", response_model=schemas.Envelope[schemas.Article], status_code=201)
def create_article(
    payload: schemas.ArticleCreate,
    current_user: User = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    article = store.create_article(Article(**payload.model_dump(), user_id=current_user.id))
    article.user = current_user
    logger.info("User %s created article %s", current_user.id, article.id)
    return ok(article)


@app.put("/api/article/{article_id}", response_model=schemas.Envelope[schemas.Article])
def update_article(
    article_id: int,
    payload: schemas.ArticleUpdate,
    current_user: User = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    article = get_owned_article(article_id, current_user, store)
    for field, value in payload.model_dump(exclude_none=True).items():
        setattr(article, field, value)
    store.update_article(article)
    return ok(article)


@app.delete("/api/article/{article_id}", response_model=schemas.Envelope[schemas.Article])
def delete_article(
    article_id: int,
    current_user: User = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    article = get_owned_article(article_id, current_user, store)
    store.delete_article(article_id)
    logger.info("User %s deleted article %s", current_user.id, article_id)
    return ok(article)


@app.get("/api/user/", response_model=schemas.Envelope[List[schemas.User]])
def list_users(store: Store = Depends(get_store)):
    return ok(store.list_users())


@app.post("/api/user/login", response_model=schemas.Envelope[schemas.LoginData])
def login(credentials: schemas.LoginRequest, store: Store = Depends(get_store)):
    user = store.get_user_by_username(credentials.username)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    if not verify_password(credentials.password, user.password):
        raise HTTPException(status_code=401, detail="Incorrect password")

    access_token = create_access_token(
        data={"sub": str(user.id)},
        expires_delta=timedelta(minutes=settings.access_token_expire_minutes),
    )
    return ok({"token": access_token, "token_type": "bearer", "user": user}, msg="Login successful")


@app.post("/api/user/register", response_model=schemas.Envelope[schemas.User])
def register(payload: schemas.UserCreate, store: Store = Depends(get_store)):
    user = User(
        username=payload.username,
        password=hash_password(payload.password),
        nickname=payload.nickname,
        email=payload.email,
    )
    try:
        store.create_user(user)
    except UsernameTakenError:
        raise HTTPException(status_code=409, detail="Username already exists")
    logger.info("Registered user %s", user.username)
    return ok(user, msg="Registration successful")


if __name__ == "__main__":
    uvicorn.run("main:app", host=settings.host, port=settings.port)
