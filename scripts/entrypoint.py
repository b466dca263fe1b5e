import logging
import os

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("entrypoint")


def main() -> None:
  """Launch the notification service under uvicorn."""
  # Cloud Run injects the listening port.
  port = os.getenv("PORT", "8080")
  logger.info("Starting notification service on port %s...", port)
  # Replace the current process so uvicorn receives SIGTERM directly.
  args = ["uvicorn", "app.main:app", "--host", "0.0.0.0", "--port", port, "--no-server-header"]
  os.execvp("uvicorn", args)


if __name__ == "__main__":
  main()
