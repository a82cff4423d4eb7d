import os

import uvicorn


def main():
    uvicorn.run(
        "psw_service.main:create_app",
        factory=True,
        host=os.getenv("HOST") or "0.0.0.0",
        port=int(os.getenv("PORT") or "8000"),
    )


if __name__ == "__main__":
    main()
