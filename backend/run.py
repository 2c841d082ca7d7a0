# backend/run.py
import sys
import uvicorn
from devcamper.config import settings

def main():
    try:
        uvicorn.run(
            "devcamper.main:app",
            host=settings.API_HOST,
            port=settings.API_PORT,
            reload=True
        )
    except Exception as e:
        print(f"Error starting the server: {e}")
        sys.exit(1)

if __name__ == "__main__":
    main()
