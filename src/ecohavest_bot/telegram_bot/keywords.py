"""
Keyword auto-replies.

The table is an ordered tuple scanned front to back; the first trigger found
as a substring of the lowercased message wins. Overlapping triggers resolve
to whichever is declared first, so "issue" answers for "issues" too.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Tuple

import telegram
from telegram.error import TelegramError
from telegram.ext import ApplicationHandlerStop, ContextTypes

from ..utils.logging import log_response_time

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InlineButton:
    """A button that either opens a URL or raises a named callback."""
    label: str
    url: Optional[str] = None
    callback_data: Optional[str] = None

    def __post_init__(self):
        if (self.url is None) == (self.callback_data is None):
            raise ValueError("InlineButton needs exactly one of url or callback_data")

    def to_telegram(self) -> telegram.InlineKeyboardButton:
        if self.url is not None:
            return telegram.InlineKeyboardButton(self.label, url=self.url)
        return telegram.InlineKeyboardButton(self.label, callback_data=self.callback_data)


@dataclass(frozen=True)
class KeywordEntry:
    trigger: str
    reply_text: str
    buttons: Tuple[InlineButton, ...] = ()

    def reply_markup(self) -> Optional[telegram.InlineKeyboardMarkup]:
        if not self.buttons:
            return None
        # One button per row
        return telegram.InlineKeyboardMarkup([[button.to_telegram()] for button in self.buttons])


KYC_TEXT = """
<b>KYC Verification Guide</b>

1️⃣ Upload a clear photo of your ID (passport, driver's license)
2️⃣ Provide proof of address (utility bill, bank statement)
3️⃣ Allow up to 24 hours for review.
"""

SIGNUP_TEXT = """
<b>How to Sign Up</b>

• Go to the <a href="https://ecohavest.org/signup">Signup Page</a>
• Fill in your details and verify your email
• Start trading instantly!
"""

PROBLEM_TEXT = """
<b>Experiencing an Issue?</b>

We're sorry to hear you're facing a problem. Please describe the issue you're encountering in detail.

Alternatively, you can contact our support team directly via email for assistance.
"""


def build_keyword_table() -> Tuple[KeywordEntry, ...]:
    """Default trigger table, in match order."""
    problem_buttons = (InlineButton('📧 Contact Us', url='https://ecohavest.org/contact'),)

    table = [
        KeywordEntry('kyc', KYC_TEXT, (
            InlineButton('📄 KYC Docs', url='https://ecohavest.org/dashboard/account/kyc'),
            InlineButton('❓ Need Help?', callback_data='kyc_help'),
        )),
        KeywordEntry('signup', SIGNUP_TEXT),
    ]
    # Aliases share one payload
    for trigger in ('problem', 'issue', 'issues', 'trouble', 'other'):
        table.append(KeywordEntry(trigger, PROBLEM_TEXT, problem_buttons))

    return tuple(table)


class KeywordDispatcher:
    """Replies to the first keyword found in an incoming text message."""

    def __init__(self, table: Iterable[KeywordEntry]):
        self.table: Sequence[KeywordEntry] = tuple(table)
        triggers = [entry.trigger for entry in self.table]
        if any(trigger != trigger.lower() or not trigger for trigger in triggers):
            raise ValueError("Keyword triggers must be non-empty and lowercase")
        logger.info(f"Keyword dispatcher loaded {len(self.table)} triggers")

    def match(self, text: Optional[str]) -> Optional[KeywordEntry]:
        """Return the earliest declared entry whose trigger occurs in text."""
        if not text:
            return None
        incoming = text.lower()
        for entry in self.table:
            if entry.trigger in incoming:
                return entry
        return None

    @log_response_time
    async def handle_message(self, update: telegram.Update, context: ContextTypes.DEFAULT_TYPE):
        """Reply with the matched payload and stop further handler groups; otherwise fall through."""
        message = update.effective_message
        if message is None:
            return

        entry = self.match(message.text)
        if entry is None:
            return

        try:
            await message.reply_html(entry.reply_text, reply_markup=entry.reply_markup())
            logger.info(f"Keyword '{entry.trigger}' matched in chat {message.chat_id}")
        except TelegramError as e:
            logger.error(f"Failed to send keyword reply for '{entry.trigger}': {e}")

        raise ApplicationHandlerStop
