"""Example FastAPI service replying through Riposte.

Run with:
    uvicorn examples.app:app --port 3001

Then try /success, /error, /forbidden, /missing and /doesNotExist, with and
without an ``Accept-Language: fr`` header.
"""
from fastapi import Depends, FastAPI

from riposte import CatalogTranslator, Dispatcher, Reply
from riposte.core.config import get_settings
from riposte.core.logging import configure_logging, get_logger
from riposte.middleware import get_reply, install, respond

settings = get_settings()

configure_logging(level=settings.LOG_LEVEL, json_logs=settings.LOG_JSON)

log = get_logger(__name__)

translator = CatalogTranslator({
    "en": {
        "server": {
            "400": {
                "notfound": "The page {page} could not be found",
                "forbidden": "The page is forbidden",
                "unauthorized": "You are not authorized to access this page",
            },
            "500": {"generic": "An internal server error has occurred."},
        }
    },
    "fr": {
        "server": {
            "400": {
                "notfound": "La page {page} est introuvable",
                "forbidden": "La page est interdite",
            },
        }
    },
})

app = FastAPI(title="Riposte Example", version="0.1.0")

dispatcher = install(app, Dispatcher({"translator": translator, "log_request_level": "info", "log_reply_level": "info"}))


@app.get("/success")
async def success(reply: Reply = Depends(get_reply)):
    reply.set_data("Woot, a successful API call.")
    return await respond(reply)


@app.get("/error")
async def error(reply: Reply = Depends(get_reply)):
    await reply.add_errors(RuntimeError("An error occurred during the API call."))
    return await respond(reply)


@app.get("/forbidden")
async def forbidden(reply: Reply = Depends(get_reply)):
    # Replaces any errors and sends immediately
    delivery = (await reply.set_forbidden()).unwrap()
    return delivery.response


@app.get("/missing/{page}")
async def missing(page: str, reply: Reply = Depends(get_reply)):
    await reply.add_not_found({"message_data": {"page": page}})
    return await respond(reply)


@app.get("/health")
async def health_check():
    return {"status": "healthy", "version": "0.1.0"}


if __name__ == "__main__":
    import uvicorn

    log.info("server_config", port=3001, debug=settings.DEBUG)
    uvicorn.run("examples.app:app", port=3001, log_config=None)
