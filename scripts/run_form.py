import argparse
import asyncio
import logging

from form_fill_agent.agent.browser import BrowserSession
from form_fill_agent.agent.errors import FormFillError
from form_fill_agent.agent.orchestrator import run_form_fill
from form_fill_agent.config import settings


async def wait_for_operator(message: str) -> None:
    await asyncio.to_thread(input, message)


async def fill_form(url: str, context: str | None) -> int:
    async with BrowserSession() as browser:
        try:
            run = await run_form_fill(browser, url, context=context)
        except FormFillError as exc:
            print(f"Run aborted: {exc}")
            if settings.keep_browser_open:
                await wait_for_operator("Browser left as-is for diagnosis. Press Enter to close it...")
            return 1

        if run.report:
            for outcome in run.report.outcomes:
                detail = f" ({outcome.detail})" if outcome.detail else ""
                print(f"  [{outcome.status}] {outcome.kind} {outcome.label!r}{detail}")
        if settings.keep_browser_open:
            await wait_for_operator("Browser left open for review. Press Enter to close it...")
        return 0 if run.status == "filled" else 2


def main():
    parser = argparse.ArgumentParser(description="Discover and auto-fill the fields of a web form")
    parser.add_argument("--url", required=True, help="Address of the form to fill")
    parser.add_argument("--context", default=None, help="Free-text hint for the values, e.g. the role applied for")
    args = parser.parse_args()

    logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    raise SystemExit(asyncio.run(fill_form(args.url, args.context)))


if __name__ == "__main__":
    main()
