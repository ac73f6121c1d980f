# service.py
# Local stand-in for the server under test: answers every POST after a fixed delay.
import asyncio
import os
import socket
import sys
import time

import uvicorn
from fastapi import FastAPI
from fastapi.responses import JSONResponse

PORT = 8088
DELAY_MS = int(os.getenv("DELAY_MS", 5))

app = FastAPI()


@app.post("/search/test")
async def search_test():
    start = time.time()
    await asyncio.sleep(DELAY_MS / 1000.0)
    return JSONResponse({
        "message": "Request processed",
        "hostname": socket.gethostname(),
        "time_taken": time.time() - start,
        "ts": time.time(),
    })


@app.get("/health")
def health_check():
    return {"status": "ok", "delay_ms": DELAY_MS}


if __name__ == "__main__":
    PORT = int(sys.argv[1]) if len(sys.argv) > 1 else PORT
    DELAY_MS = int(sys.argv[2]) if len(sys.argv) > 2 else DELAY_MS
    uvicorn.run(app, host="localhost", port=PORT, reload=False)
