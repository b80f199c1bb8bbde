"""Main entry point for the Playbook API."""

import os
from pathlib import Path

import uvicorn
from dotenv import load_dotenv

from playbook import Application
from playbook.api import create_fastapi_app, set_app
from playbook.logging_config import setup_logging
from scripts import SCRIPTS
from sim import Sim


def main():
    """Run the application."""
    project_root = Path(__file__).resolve().parent.parent
    load_dotenv(project_root / ".env")
    setup_logging()

    # Get configuration from environment
    api_host = os.getenv("API_HOST", "localhost")
    api_port = int(os.getenv("API_PORT", "8000"))
    api_url = f"http://{api_host}:{api_port}"

    # Create SIM instance
    sim = Sim(api_url=api_url)

    # Set SIM instance for control router
    from playbook.api.routes import control
    control.set_sim_instance(sim)

    # Application with the bundled scripts
    set_app(Application(name=os.getenv("BOT_NAME", "hubot"), scripts=SCRIPTS))

    # Create FastAPI app
    app = create_fastapi_app()

    # Run with uvicorn
    uvicorn.run(
        app,
        host=api_host,
        port=api_port,
        log_level="info",
    )


if __name__ == "__main__":
    main()
