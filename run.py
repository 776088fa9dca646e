import sys
import asyncio
import uvicorn
from ytdl_bridge.config import settings

def main():
    # Subprocess pipes need the Proactor loop on Windows
    if sys.platform == "win32":
        asyncio.set_event_loop_policy(asyncio.WindowsProactorEventLoopPolicy())

    try:
        # Run Uvicorn via API, not CLI, to ensure our policy sticks
        uvicorn.run(
            "ytdl_bridge.main:app",
            host=settings.HOST,
            port=settings.PORT,
            reload=False
        )
    except (KeyboardInterrupt, SystemExit):
        pass

if __name__ == "__main__":
    main()
