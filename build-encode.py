#!/usr/bin/env python3
import sys
import json
import asyncio
from build_model import build_from_dict
from legacy_codec import encode_build_token
from readable_codec import encode_readable
from trait_resolver import Gw2TraitResolver
from starlette.datastructures import QueryParams

async def encode_readable_query(build) -> str:
    resolver = Gw2TraitResolver()
    try:
        return str(QueryParams(await encode_readable(build, resolver)))
    finally:
        await resolver.aclose()

def main():
    args = [a for a in sys.argv[1:] if a != "--readable"]
    if len(args) != 1:
        print(f"Usage: {sys.argv[0]} '<build_json>' [--readable]", file=sys.stderr)
        sys.exit(1)

    build = build_from_dict(json.loads(args[0]))
    if "--readable" in sys.argv:
        print(asyncio.run(encode_readable_query(build)))
    else:
        print(encode_build_token(build))

if __name__ == "__main__":
    main()
