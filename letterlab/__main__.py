"""Run the API with uvicorn: ``python -m letterlab`` or the ``letterlab`` script."""

import os

import uvicorn


def main() -> None:
    port = int(os.environ.get("PORT", 5000))
    uvicorn.run("letterlab.main:app", host=os.environ.get("HOST", "0.0.0.0"), port=port)


if __name__ == "__main__":
    main()
