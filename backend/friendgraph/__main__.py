"""Run the API with uvicorn: ``python -m friendgraph`` or the ``friendgraph`` script."""

from __future__ import annotations

import uvicorn

from friendgraph.settings import settings


def main() -> None:
	uvicorn.run(
		"friendgraph.main:app",
		host=settings.api_host,
		port=settings.api_port,
		log_config=None,
		proxy_headers=True,
	)


if __name__ == "__main__":
	main()
