"""profile — free-text input and localized labels.

The "Set name" button arms the ``awaiting_name`` input; the next text
message from the chat lands in ``save_name``.

    BOT_TOKEN=... uv run python examples/profile.py
"""

from __future__ import annotations

import logging

from telegrinder import API, Telegrinder, Token

from telenav.app import HandlerContext, NavigationSettings, ScreenApp, ShowMode
from telenav.i18n import Localizer
from telenav.transport import TelegrinderTransport

I18N = Localizer(
    {
        "en": {
            "ask_name": "Send me your name.",
            "saved": "Nice to meet you, {}!",
            "too_long": "Keep it under {} characters.",
        },
        "ru": {
            "ask_name": "Пришлите своё имя.",
            "saved": "Приятно познакомиться, {}!",
            "too_long": "Не длиннее {} символов.",
        },
    },
)

MAX_NAME = 32


def build(api: API) -> ScreenApp:
    app = ScreenApp(
        TelegrinderTransport(api),
        localizer=I18N,
        settings=NavigationSettings(show_mode=ShowMode.DELETE_AND_SEND),
    )

    main = app.add_screen("Profile", "Tell me about yourself.", id="profile", is_default=True)
    main.add_button("Set name", "set_name")

    async def reply(ctx: HandlerContext, text: str) -> None:
        await api.send_message(chat_id=ctx.chat_id, text=text)

    @app.on_callback(main, "set_name")
    async def set_name(data: str, ctx: HandlerContext) -> bool:
        app.set_current_state(ctx.chat_id, "awaiting_name")
        await reply(ctx, app.localizer.get("ask_name", locale=ctx.language_code))
        return False  # nothing changed on the screen itself

    @app.on_text_input(main, "awaiting_name")
    async def save_name(text: str, ctx: HandlerContext) -> bool:
        name = text.strip()
        if len(name) > MAX_NAME:
            await reply(ctx, app.localizer.get("too_long", MAX_NAME, locale=ctx.language_code))
            return False
        app.set_state(ctx.chat_id, "name", name)
        app.clear_current_state(ctx.chat_id)
        await reply(ctx, app.localizer.get("saved", name, locale=ctx.language_code))
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
