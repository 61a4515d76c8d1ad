"""Telegram front end of the spelling drill."""
import html
import logging
import random
from typing import List, Optional

from telegram import Bot, InlineKeyboardButton, InlineKeyboardMarkup, Update
from telegram.error import TelegramError
from telegram.ext import (
    Application,
    BaseHandler,
    CallbackContext,
    CallbackQueryHandler,
    CommandHandler,
    MessageHandler,
    filters,
)

from spelldrill.config import settings
from spelldrill.models.announcement_models import SessionEvent, TransitionResult
from spelldrill.models.session_models import Phase, SessionStatus
from spelldrill.services.drill_service import DrillSession
from spelldrill.services.speech_service import AudioChannel, SpeechError

# Get logger for this module
logger = logging.getLogger(__name__)

# bot_data keys
SESSION_KEY = "session"
CHANNEL_KEY = "channel"

# Callback data
CB_HEAR = "drill_hear"
CB_NEXT = "drill_next"
CB_RESET = "drill_reset"

# Button texts
HEAR_WORD = "🔊 Hear Word"
NEXT_WORD = "➡️ Next Word"
RESET = "🔄 Reset"
PRACTICE_AGAIN = "🔁 Practice Again"

CELEBRATIONS = ["🎉", "🎊", "🥳", "🌟", "✨", "🏆"]

MSG_CORRECT = "Great job! You spelled it correctly."
MSG_TRY_AGAIN = "Try again. You typed \"{answer}\" but the word is different. Listen carefully and try once more."
MSG_REVEAL = "Keep practicing. Copy the word now. You'll see it again later."
MSG_PRACTICE_REVEALED = "Practice typing the word above. Press Next Word when you are ready."
MSG_PENDING = "Still checking your previous answer, one moment..."

KB_PRACTICE = [[InlineKeyboardButton(HEAR_WORD, callback_data=CB_HEAR),
                InlineKeyboardButton(RESET, callback_data=CB_RESET)]]
KB_REVEALED = [[InlineKeyboardButton(HEAR_WORD, callback_data=CB_HEAR),
                InlineKeyboardButton(NEXT_WORD, callback_data=CB_NEXT)]]
KB_COMPLETE = [[InlineKeyboardButton(PRACTICE_AGAIN, callback_data=CB_RESET)]]


class TelegramAudioChannel(AudioChannel):
    """Plays clips by sending them as voice messages to the bound chat.

    Stopping deletes the clips sent since the previous stop, so a new turn
    replaces the audio of the old one.
    """

    def __init__(self, bot: Optional[Bot] = None, chat_id: Optional[int] = None):
        self.bot = bot
        self.chat_id = chat_id
        self._sent: List[int] = []

    @property
    def available(self) -> bool:
        return self.bot is not None and self.chat_id is not None

    def bind(self, bot: Bot, chat_id: int) -> None:
        if chat_id != self.chat_id:
            logger.info(f"Audio channel bound to chat {chat_id}")
            self._sent = []
        self.bot = bot
        self.chat_id = chat_id

    async def play(self, audio: bytes) -> None:
        if not self.available:
            raise SpeechError("No chat bound to the audio channel")
        try:
            message = await self.bot.send_voice(chat_id=self.chat_id, voice=audio)
        except TelegramError as e:
            raise SpeechError(f"Could not send voice message: {e}") from e
        self._sent.append(message.message_id)

    async def stop(self) -> None:
        sent, self._sent = self._sent, []
        if not self.available:
            return
        for message_id in sent:
            try:
                await self.bot.delete_message(chat_id=self.chat_id, message_id=message_id)
            except TelegramError as e:
                logger.debug(f"Could not delete voice message {message_id}: {e}")


def get_session(context: CallbackContext) -> DrillSession:
    return context.application.bot_data[SESSION_KEY]


def bind_chat(update: Update, context: CallbackContext) -> None:
    """Route the session audio to the chat the learner is using."""
    channel: TelegramAudioChannel = context.application.bot_data[CHANNEL_KEY]
    if update.effective_chat:
        channel.bind(context.bot, update.effective_chat.id)


async def log_received(update: Update, context_type: str) -> None:
    """Log message."""
    txt = ""
    if update.callback_query:
        txt = f" {update.callback_query.data}"
    elif update.message and context_type != "start":
        txt = f" {update.message.text}"
    user = update.effective_user
    logger.info(f"Received @{context_type:8} from user {user.username if user else None} ({user.id if user else None}){txt}")


def plural(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"


def format_status(status: SessionStatus) -> str:
    """Progress summary of the session."""
    lines = [
        f"📊 Mastered: {status.mastered_count} • Remaining: {status.remaining} • "
        f"Mistakes: {status.total_mistakes}",
    ]
    if status.phase == Phase.PRACTICING:
        lines.append(f"Tries left: {status.tries_left}")
        if status.current_word_mistakes > 0:
            lines.append(f"Mistakes on this word: {status.current_word_mistakes}")
    return "\n".join(lines)


def format_complete(status: SessionStatus) -> str:
    return (
        "All done! Great work 🎉\n\n"
        f"You've spelled all {plural(status.total, 'word')} correctly with "
        f"{plural(status.total_mistakes, 'total mistake')}. Keep practicing to stay sharp."
    )


def format_prompt(status: SessionStatus) -> str:
    """What the learner should do next."""
    if status.phase == Phase.COMPLETE:
        return format_complete(status)
    if status.revealed and status.current_word:
        return (
            f"Correct spelling: <b>{html.escape(status.current_word.text)}</b>\n\n"
            f"{MSG_PRACTICE_REVEALED}\n\n{format_status(status)}"
        )
    return f"🎧 Listen and type the word.\n\n{format_status(status)}"


def keyboard_for(status: SessionStatus) -> InlineKeyboardMarkup:
    if status.phase == Phase.COMPLETE:
        return InlineKeyboardMarkup(KB_COMPLETE)
    if status.revealed:
        return InlineKeyboardMarkup(KB_REVEALED)
    return InlineKeyboardMarkup(KB_PRACTICE)


def format_feedback(result: TransitionResult, answer: str, status: SessionStatus) -> str:
    """Turn the events of a submission into a chat message."""
    parts = []
    if result.has(SessionEvent.CELEBRATE):
        parts.append(" ".join(random.sample(CELEBRATIONS, 3)))
    if result.has(SessionEvent.CORRECT):
        parts.append(MSG_CORRECT)
    elif result.has(SessionEvent.TRY_AGAIN):
        parts.append(MSG_TRY_AGAIN.format(answer=html.escape(answer.strip())))
    elif result.has(SessionEvent.REVEAL):
        parts.append(MSG_REVEAL)
    parts.append(format_prompt(status))
    return "\n\n".join(parts)


async def reply(update: Update, text: str, reply_markup: Optional[InlineKeyboardMarkup] = None) -> None:
    """Answer a message, or edit the message a button belongs to."""
    try:
        if update.callback_query:
            await update.callback_query.edit_message_text(text, reply_markup=reply_markup, parse_mode="HTML")
        elif update.message:
            await update.message.reply_text(text, reply_markup=reply_markup, parse_mode="HTML")
    except TelegramError as e:
        logger.warning(f"Error sending reply: {e}")


async def handle_start(update: Update, context: CallbackContext) -> None:
    """Greet the learner, show progress and announce the current word."""
    await log_received(update, "start")
    bind_chat(update, context)
    session = get_session(context)

    voice = session.announcer.check_voice()
    message = "Spelling Words Trainer ✏️\n\nEach word is announced as \"The next word is:\" … then the word."
    if voice.notice:
        message += f"\n\n⚠️ Voice Notice: {voice.notice}"
    message += f"\n\n{format_prompt(session.status)}"

    await reply(update, message, keyboard_for(session.status))
    await session.replay()


async def handle_status(update: Update, context: CallbackContext) -> None:
    await log_received(update, "status")
    session = get_session(context)
    await reply(update, format_prompt(session.status), keyboard_for(session.status))


async def handle_hear(update: Update, context: CallbackContext) -> None:
    """Repeat the current word."""
    await log_received(update, "hear")
    bind_chat(update, context)
    await get_session(context).replay()


async def handle_reset(update: Update, context: CallbackContext) -> None:
    """Start over with a new shuffle."""
    await log_received(update, "reset")
    bind_chat(update, context)
    session = get_session(context)
    await session.reset()
    await reply(update, f"Progress reset. Let's start again!\n\n{format_prompt(session.status)}",
                keyboard_for(session.status))


async def handle_next(update: Update, context: CallbackContext) -> None:
    """Move on after copying a revealed word."""
    await log_received(update, "next")
    bind_chat(update, context)
    session = get_session(context)
    result = await session.advance()
    if not result.changed:
        logger.debug("Next word requested while no word is revealed")
    await reply(update, format_prompt(session.status), keyboard_for(session.status))


async def handle_answer(update: Update, context: CallbackContext) -> None:
    """Check a typed answer."""
    await log_received(update, "answer")
    bind_chat(update, context)
    session = get_session(context)
    answer = update.message.text or ""

    if session.pending:
        await reply(update, MSG_PENDING)
        return

    status = session.status
    if status.phase == Phase.COMPLETE:
        await reply(update, format_complete(status), keyboard_for(status))
        return

    if status.revealed:
        # Copy practice only, answers are not checked while revealed
        await session.update_draft(answer)
        await reply(update, format_prompt(session.status), keyboard_for(session.status))
        return

    result = await session.submit(answer)
    if not result.changed:
        return
    await reply(update, format_feedback(result, answer, session.status), keyboard_for(session.status))


async def handle_callback(update: Update, context: CallbackContext) -> None:
    """Handle callback queries from inline keyboard."""
    query = update.callback_query
    await query.answer()

    pinned = settings.bot.chat_id
    if pinned is not None and (not update.effective_chat or update.effective_chat.id != pinned):
        logger.debug(f"Ignoring callback from chat {update.effective_chat.id if update.effective_chat else None}")
        return

    if query.data == CB_HEAR:
        await handle_hear(update, context)
    elif query.data == CB_NEXT:
        await handle_next(update, context)
    elif query.data == CB_RESET:
        await handle_reset(update, context)
    else:
        logger.debug(f"Received unknown callback data: {query.data}")


def build_handlers(chat_id: Optional[int] = None) -> List[BaseHandler]:
    """Handlers of the drill, optionally restricted to a single chat."""
    chat_filter = filters.Chat(chat_id=chat_id) if chat_id is not None else filters.ALL
    return [
        CommandHandler("start", handle_start, filters=chat_filter),
        CommandHandler("hear", handle_hear, filters=chat_filter),
        CommandHandler("status", handle_status, filters=chat_filter),
        CommandHandler("reset", handle_reset, filters=chat_filter),
        CallbackQueryHandler(handle_callback),
        MessageHandler(filters.TEXT & ~filters.COMMAND & chat_filter, handle_answer),
    ]


def register_handlers(application: Application, chat_id: Optional[int] = None) -> None:
    for handler in build_handlers(chat_id):
        application.add_handler(handler)
