"""Builds shareable links for a build and reads builds back out of links"""

import logging
from typing import Optional
from starlette.datastructures import URL, QueryParams
from build_model import BuildDescriptor
from legacy_codec import decode_build_token, encode_build_token
from readable_codec import READABLE_PARAMS, decode_readable, encode_readable
from trait_resolver import TierOrderResolver

COMPRESSED = "compressed"
READABLE = "readable"
URL_FORMATS = (COMPRESSED, READABLE)
BUILD_PARAM = "build"


def _require_resolver(resolver: Optional[TierOrderResolver]) -> TierOrderResolver:
    if resolver is None:
        raise ValueError("Readable build links need a tier order resolver")
    return resolver


async def get_shareable_url(build: BuildDescriptor, url_format: str, current_url: str,
                            resolver: Optional[TierOrderResolver] = None) -> str:
    """Return ``current_url`` with the build written into its query string.

    ``compressed`` sets a single ``build`` parameter and keeps unrelated
    parameters. ``readable`` replaces the whole query string.
    """
    url = URL(current_url)
    if url_format == COMPRESSED:
        token = encode_build_token(build)
        share_url = url.remove_query_params(READABLE_PARAMS).include_query_params(**{BUILD_PARAM: token})
    elif url_format == READABLE:
        params = await encode_readable(build, _require_resolver(resolver))
        share_url = url.replace_query_params(**params)
    else:
        raise ValueError(f"Unknown build URL format: {url_format!r}")
    logging.debug("Created %s share link for %s build (%s chars)", url_format, build.profession, len(str(share_url)))
    return str(share_url)


async def load_build_from_url(current_url: str,
                              resolver: Optional[TierOrderResolver] = None) -> Optional[BuildDescriptor]:
    """Decode the build in a link, or None when the link carries no build.

    Decode failures propagate as BuildDecodeError; nothing is partially applied.
    """
    params = QueryParams(URL(current_url).query)
    if "c" in params:
        return await decode_readable(params, _require_resolver(resolver))
    if BUILD_PARAM in params:
        return decode_build_token(params[BUILD_PARAM])
    return None
