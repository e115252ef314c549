#!/usr/bin/env python3
import sys
import json
from exceptions import BuildDecodeError
from legacy_codec import decode_build_token

def main():
    if len(sys.argv) != 2:
        print(f"Usage: {sys.argv[0]} <build_token>", file=sys.stderr)
        sys.exit(1)
    try:
        build = decode_build_token(sys.argv[1])
    except BuildDecodeError as e:
        print(f"Unrecognized or corrupted build token: {e}", file=sys.stderr)
        sys.exit(2)
    print(json.dumps(build.to_dict(), separators=(",", ":")))

if __name__ == "__main__":
    main()
