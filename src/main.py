"""Build Share App"""

import logging
import sys
import os
from pathlib import Path
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, HTTPException
from fastapi.templating import Jinja2Templates
from build_model import build_from_dict
from exceptions import BuildDecodeError, FieldOutOfRangeError
from share_link import URL_FORMATS, COMPRESSED, get_shareable_url, load_build_from_url
from trait_resolver import Gw2TraitResolver


# Define log format
LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
TEMPLATES_DIR = Path(os.getenv("TEMPLATES_DIR", Path(__file__).resolve().parent.parent / "templates"))
BAD_LINK_MESSAGE = "Unrecognized or corrupted build link."

# Create a handler with the custom format
formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
handler = logging.StreamHandler(sys.stdout)
handler.setFormatter(formatter)

# Configure the root logger
logging.basicConfig(
    level=LOG_LEVEL,
    format=LOG_FORMAT,
    datefmt=LOG_DATE_FORMAT,
    handlers=[handler]
)

# Apply the same format to all relevant Uvicorn loggers
for logger_name in ["uvicorn", "uvicorn.access"]:
    logger = logging.getLogger(logger_name)
    logger.handlers.clear()
    logger.propagate = False
    logger.addHandler(handler)

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

resolver = Gw2TraitResolver()

@asynccontextmanager
async def lifespan(_: FastAPI):
    """Lifespan event handler to release the GW2 API client on shutdown."""
    yield  # App runs here
    await resolver.aclose()

app = FastAPI(lifespan=lifespan)


@app.get("/")
async def serve_build_page(request: Request):
    """Render the build carried in the query string, or the empty build."""
    build = None
    error = None
    try:
        build = await load_build_from_url(str(request.url), resolver)
    except BuildDecodeError as e:
        logging.warning("%s Rejected build link: %s", request.client.host, e)
        error = BAD_LINK_MESSAGE

    return templates.TemplateResponse(
        request,
        "build.html",
        {"build": build.to_dict() if build else None, "error": error},
    )


@app.post("/share")
async def create_share_link(request: Request):
    """Encode a build and return a shareable link rooted at this site."""
    try:
        body = await request.json()
    except ValueError as e:
        raise HTTPException(status_code=422, detail="Request body is not valid JSON.") from e
    if not isinstance(body, dict):
        raise HTTPException(status_code=422, detail="Expected a JSON object.")

    url_format = body.get("format", COMPRESSED)
    if url_format not in URL_FORMATS:
        raise HTTPException(status_code=422, detail=f"format must be one of {', '.join(URL_FORMATS)}.")

    try:
        build = build_from_dict(body.get("build"))
        base_url = f"{request.url.scheme}://{request.url.netloc}/"
        url = await get_shareable_url(build, url_format, base_url, resolver)
    except (BuildDecodeError, FieldOutOfRangeError) as e:
        raise HTTPException(status_code=422, detail=str(e)) from e

    logging.info("%s Created %s link for %s build", request.client.host, url_format, build.profession)
    return {"url": url}


@app.get("/api/build")
async def read_build(request: Request):
    """Decode the build in the query string and return it as JSON."""
    try:
        build = await load_build_from_url(str(request.url), resolver)
    except BuildDecodeError as e:
        logging.warning("%s Rejected build link: %s", request.client.host, e)
        raise HTTPException(status_code=400, detail=BAD_LINK_MESSAGE) from e

    if build is None:
        raise HTTPException(status_code=404, detail="No build present.")
    return build.to_dict()
