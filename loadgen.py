"""
loadgen.py: simple async load script for LinkTrack

Usage:
  python loadgen.py write --base http://127.0.0.1:8000 --count 2000 --concurrency 100 --out links_created.jsonl
  python loadgen.py read  --base http://127.0.0.1:8000 --in links_created.jsonl --count 15000 --concurrency 200

"write" creates short links and saves their ids; "read" follows random ids
(without following the redirect) using a rotating set of user agents.
"""
import argparse
import asyncio
import json
import random
import string
import time
from datetime import datetime, timezone

import httpx

USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0 Safari/537.36",
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 Mobile/15E148 Safari/604.1",
    "Mozilla/5.0 (X11; Linux x86_64; rv:121.0) Gecko/20100101 Firefox/121.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 Version/17.1 Safari/605.1.15",
]


def _now_iso():
    return datetime.now(timezone.utc).isoformat()


def _rand_url(idx: int) -> str:
    host = random.choice(["example", "sample", "demo", "test"]) + "." + random.choice(["com", "net", "org", "io"])
    path = "".join(random.choice(string.ascii_letters + string.digits) for _ in range(8))
    return f"https://{host}/{path}?q={idx}"


def _load_ids(path):
    ids = []
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            short_id = json.loads(line).get("shortId")
            if short_id:
                ids.append(short_id)
    return ids


async def _create_one(client: httpx.AsyncClient, base: str, idx: int):
    url = _rand_url(idx)
    try:
        r = await client.post(f"{base}/shorten", json={"originalUrl": url}, timeout=10)
        r.raise_for_status()
        return {"shortId": r.json()["shortId"], "originalUrl": url}
    except (httpx.HTTPError, KeyError, ValueError):
        return None


async def _hit_one(client: httpx.AsyncClient, base: str, short_id: str):
    headers = {"User-Agent": random.choice(USER_AGENTS)}
    try:
        r = await client.get(f"{base}/{short_id}", headers=headers, follow_redirects=False, timeout=10)
        return r.status_code == 302
    except httpx.HTTPError:
        return False


async def _run(args) -> int:
    ids = []
    if args.mode == "read":
        ids = _load_ids(args.ids_file)
        if not ids:
            print(f"No ids found in {args.ids_file}. Run the write mode first.")
            return 1

    start_iso = _now_iso()
    t0 = time.perf_counter()
    success = 0
    created = []

    limits = httpx.Limits(max_connections=args.concurrency, max_keepalive_connections=args.concurrency)
    async with httpx.AsyncClient(limits=limits) as client:
        sem = asyncio.Semaphore(args.concurrency)

        async def _task(i):
            nonlocal success
            async with sem:
                if args.mode == "write":
                    row = await _create_one(client, args.base, i)
                    if row:
                        created.append(row)
                        success += 1
                elif await _hit_one(client, args.base, random.choice(ids)):
                    success += 1

        await asyncio.gather(*(_task(i) for i in range(args.count)))

    dt = time.perf_counter() - t0
    if created:
        with open(args.out, "w", encoding="utf-8") as out:
            for row in created:
                out.write(json.dumps(row) + "\n")

    print(f"START: {start_iso}")
    print(f"END:   {_now_iso()}")
    print(f"TOTAL: {dt:.3f} s")
    print(f"OPS:   {args.mode}s={args.count}, ok={success}, fail={args.count - success}")
    if dt > 0:
        print(f"RPS:   {success/dt:.1f} req/s")
    return 0


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("mode", choices=["write", "read"])
    parser.add_argument("--base", default="http://127.0.0.1:8000")
    parser.add_argument("--count", type=int, default=2000)
    parser.add_argument("--concurrency", type=int, default=100)
    parser.add_argument("--out", default="links_created.jsonl")
    parser.add_argument("--in", dest="ids_file", default="links_created.jsonl")
    args = parser.parse_args()
    raise SystemExit(asyncio.run(_run(args)))


if __name__ == "__main__":
    main()
