from __future__ import annotations

import json
from pathlib import Path

import typer
import uvicorn

from smartcv.api.app import create_app
from smartcv.config import get_settings
from smartcv.core.orchestrator import ConversationOrchestrator
from smartcv.core.runtime import AppContext, build_context
from smartcv.db.init import init_database
from smartcv.db.seed import seed_jobs
from smartcv.logging_config import configure_logging
from smartcv.types import InboundFile

app = typer.Typer(help="SmartCV CLI")
jobs_app = typer.Typer(help="Job posting registry")

app.add_typer(jobs_app, name="jobs")


class ConsoleChannel:
    """Prints replies instead of delivering them; used by `smartcv chat`."""

    def __init__(self, name: str):
        self.name = name

    def send_text(self, identifier: str, text: str) -> None:
        typer.echo(f"[{self.name} -> {identifier}]\n{text}")


def _context(*, console: bool = False) -> AppContext:
    configure_logging()
    channels = None
    if console:
        channels = {"whatsapp": ConsoleChannel("whatsapp"), "telegram": ConsoleChannel("telegram")}
    context = build_context(get_settings(), channels=channels)
    init_database(context)
    return context


@app.command("init")
def init_cmd(seed: bool = typer.Option(False, "--seed", help="Insert sample job postings")) -> None:
    """Create database tables and optionally seed sample postings."""
    configure_logging()
    context = build_context(get_settings())
    result = init_database(context, seed=seed)
    typer.echo(json.dumps({"ok": True, **result}, indent=2))


@app.command("serve")
def serve_cmd(
    host: str | None = typer.Option(None, "--host"),
    port: int | None = typer.Option(None, "--port"),
) -> None:
    """Run the webhook server."""
    settings = get_settings()
    configure_logging(settings)
    uvicorn.run(create_app(), host=host or settings.app_host, port=port or settings.app_port)


@app.command("chat")
def chat_cmd(
    identifier: str = typer.Option(..., "--identifier", help="'+' prefix for WhatsApp, chat id for Telegram"),
    text: str | None = typer.Option(None, "--text"),
    file: Path | None = typer.Option(None, "--file", exists=True, readable=True),
    email: str | None = typer.Option(None, "--email"),
) -> None:
    """Run a single conversational turn locally and print the reply.

    Session state is not kept between runs: each invocation starts with an empty
    session store, so the cover-letter and pending-job steps only carry over
    inside a running server (`smartcv serve`).
    """
    if not text and file is None:
        raise typer.BadParameter("pass --text or --file")

    context = _context(console=True)
    try:
        inbound = None
        if file is not None:
            inbound = InboundFile(content=file.read_bytes(), filename=file.name, declared_email=email)
        ConversationOrchestrator(context).handle_message(identifier, text, inbound)
    finally:
        context.close()


@jobs_app.command("add")
def jobs_add(
    title: str = typer.Option(..., "--title"),
    company: str = typer.Option(..., "--company"),
    location: str = typer.Option(..., "--location"),
    email: str = typer.Option(..., "--email", help="Recruiter email"),
    remote: bool = typer.Option(False, "--remote/--onsite"),
) -> None:
    context = _context()
    with context.repository() as repo:
        job = repo.create_job(title=title, company=company, location=location, email=email, is_remote=remote)
        typer.echo(json.dumps({"id": job.id, "title": job.title}, indent=2))


@jobs_app.command("list")
def jobs_list(limit: int = typer.Option(50, "--limit")) -> None:
    context = _context()
    with context.repository() as repo:
        rows = repo.list_jobs(limit=limit)
        payload = [
            {
                "id": row.id,
                "title": row.title,
                "company": row.company,
                "location": row.location,
                "remote": row.is_remote,
            }
            for row in rows
        ]
    typer.echo(json.dumps(payload, indent=2))


@jobs_app.command("seed")
def jobs_seed() -> None:
    context = _context()
    with context.session_factory() as session:
        inserted = seed_jobs(session)
    typer.echo(json.dumps({"seeded_jobs": inserted}, indent=2))


def main() -> None:
    app()


if __name__ == "__main__":
    main()
