#!/usr/bin/env python
from __future__ import annotations

import argparse
import json

from jqdata.auth import Credential, get_token, load_api_url, load_credential


def main() -> int:
    parser = argparse.ArgumentParser(description="Exchange JQData mobile/password for a token")
    parser.add_argument("--mob", default=None, help="Mobile number (defaults to $JQDATA_MOB or .env)")
    parser.add_argument("--pwd", default=None, help="Password (defaults to $JQDATA_PWD or .env)")
    parser.add_argument(
        "--new", action="store_true", help="Issue a new token (get_token) instead of reusing one"
    )
    args = parser.parse_args()

    if args.mob and args.pwd:
        credential = Credential(mob=args.mob, pwd=args.pwd)
    else:
        credential = load_credential()
    token = get_token(credential, reuse=not args.new, api_url=load_api_url())
    print(json.dumps({"ok": True, "token_prefix": token[:8] + "...", "len": len(token)}))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
