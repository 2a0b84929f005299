"""quickstart — a two-screen menu bot.

    BOT_TOKEN=... uv run python examples/quickstart.py
"""

from __future__ import annotations

import logging

from telegrinder import API, Telegrinder, Token

from telenav.app import HandlerContext, ScreenApp
from telenav.transport import TelegrinderTransport


def build(api: API) -> ScreenApp:
    app = ScreenApp(TelegrinderTransport(api))

    # ── Screens ──────────────────────────────────────────────────────────────

    main = app.add_screen("Main menu", "Pick one:", id="main", is_default=True)
    main.add_button("Help", "go_help").add_button("Counter", "screen:counter")

    help_ = app.add_screen("Help", "Press a button, get a screen.", id="help", parent=main)
    help_.add_button("Source", url="https://github.com/timoniq/telegrinder")

    counter = app.add_screen("Counter", "Presses: 0", id="counter", parent=main)
    counter.add_button("+1", "inc")

    # ── Handlers ─────────────────────────────────────────────────────────────

    @app.on_callback(main, "go_help")
    async def go_help(data: str, ctx: HandlerContext) -> bool:
        await app.navigate_to(ctx.chat_id, help_)
        return True

    presses = 0

    # screen content is shared by every chat; a handled callback re-renders it
    @app.on_callback(counter, "inc")
    def inc(data: str, ctx: HandlerContext) -> bool:
        nonlocal presses
        presses += 1
        counter.with_text(f"Presses: {presses}")
        return True

    return app


if __name__ == "__main__":
    import os

    logging.basicConfig(level=logging.INFO)
    token = os.environ.get("BOT_TOKEN", "")
    if not token:
        print("Set BOT_TOKEN=... to run")
    else:
        api = API(Token(token))
        bot = Telegrinder(api)
        build(api).bind(bot)
        bot.run_forever()
