import os

import uvicorn

if __name__ == "__main__":
    port = int(os.environ.get("PORT", 8000))
    # Single worker by default: the Supabase client, AI client and picker
    # cache are per-process singletons.
    workers = int(os.environ.get("WEB_CONCURRENCY", 1))
    uvicorn.run(
        "modcalc.main:app",
        host="0.0.0.0",
        port=port,
        workers=workers,
    )
