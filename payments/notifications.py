"""
Withdrawal requests are not an API operation of the payment provider; they are
relayed to the operators' Telegram chat through the Bot API.
"""
import logging
import re

import requests
from django.conf import settings

from .exceptions import WithdrawalRequestError

logger = logging.getLogger(__name__)

MARKDOWN_V2_SPECIAL = re.compile(r'([_*\[\]()~`>#+\-=|{}.!\\])')


def escape_markdown(text) -> str:
    return MARKDOWN_V2_SPECIAL.sub(r'\\\1', str(text))


def format_amount(value) -> str:
    return f'{int(value):,}'


def build_withdrawal_message(client_id, amount, wallet_address, telegram_contact, available_balance) -> str:
    return (
        f"💳 *Сумма:* `{format_amount(amount)} RUB`\n"
        f"💼 *Кошелёк TRON:* `{wallet_address}`\n"
        f"💰 *Баланс:* `{format_amount(available_balance)} RUB`\n"
        f"🧾 *User ID:* `{client_id}`\n"
        f"📞 *Контакт:* {escape_markdown(telegram_contact)}"
    )


def send_withdrawal_request(credentials, amount, wallet_address, telegram_contact, available_balance,
                            session=None):
    """Post the withdrawal request to the operators' chat.

    Raises ``WithdrawalRequestError`` when the bot is not configured or the
    Bot API rejects the message.
    """
    token = settings.TELEGRAM_BOT_TOKEN
    chat_id = settings.TELEGRAM_CHAT_ID
    if not token or not chat_id:
        raise WithdrawalRequestError('Telegram relay is not configured')

    payload = {
        'chat_id': chat_id,
        'text': build_withdrawal_message(
            credentials.client_id, amount, wallet_address, telegram_contact, available_balance
        ),
        'parse_mode': 'MarkdownV2',
        'disable_web_page_preview': True,
    }
    http = session or requests
    try:
        response = http.post(
            f"{settings.TELEGRAM_API_URL}/bot{token}/sendMessage",
            json=payload,
            timeout=settings.PAYMENT_API_TIMEOUT,
        )
    except requests.RequestException as e:
        logger.error("withdrawal_relay_failed", extra={"error": str(e)})
        raise WithdrawalRequestError(f'Failed to send withdrawal request: {e}') from e

    if not response.ok:
        logger.error(
            "withdrawal_relay_rejected",
            extra={"status_code": response.status_code, "error": response.text}
        )
        raise WithdrawalRequestError(f'Telegram API Error: {response.status_code} - {response.text}')

    logger.info("withdrawal_relayed", extra={"client_id": credentials.client_id, "amount": amount})
    return True
