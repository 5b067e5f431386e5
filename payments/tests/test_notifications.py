from types import SimpleNamespace
from unittest import mock

import requests
from django.test import SimpleTestCase, override_settings

from payments.exceptions import WithdrawalRequestError
from payments.notifications import build_withdrawal_message, escape_markdown, send_withdrawal_request
from payments.tests.helpers import CREDENTIALS, fake_response

WALLET = 'T' + 'B' * 33


@override_settings(
    TELEGRAM_API_URL='https://tg.test',
    TELEGRAM_BOT_TOKEN='123:abc',
    TELEGRAM_CHAT_ID='-100500',
)
class WithdrawalRelayTests(SimpleTestCase):
    def setUp(self):
        self.credentials = SimpleNamespace(**CREDENTIALS)
        self.session = mock.Mock()

    def test_escape_markdown(self):
        self.assertEqual(escape_markdown('@some_user.name'), '@some\\_user\\.name')

    def test_message_contains_request_details(self):
        text = build_withdrawal_message('52019', 15000, WALLET, '@merchant', 20000)
        self.assertIn('15,000 RUB', text)
        self.assertIn(WALLET, text)
        self.assertIn('20,000 RUB', text)
        self.assertIn('52019', text)

    def test_posts_to_bot_api(self):
        self.session.post.return_value = fake_response(200, {'ok': True})

        self.assertTrue(
            send_withdrawal_request(self.credentials, 5000, WALLET, '@merchant', 10000, session=self.session)
        )

        url = self.session.post.call_args.args[0]
        payload = self.session.post.call_args.kwargs['json']
        self.assertEqual(url, 'https://tg.test/bot123:abc/sendMessage')
        self.assertEqual(payload['chat_id'], '-100500')
        self.assertEqual(payload['parse_mode'], 'MarkdownV2')

    def test_rejected_message_raises(self):
        self.session.post.return_value = fake_response(400, {'ok': False, 'description': 'chat not found'})
        with self.assertRaises(WithdrawalRequestError):
            send_withdrawal_request(self.credentials, 5000, WALLET, '@merchant', 10000, session=self.session)

    def test_network_error_raises(self):
        self.session.post.side_effect = requests.ConnectionError('down')
        with self.assertRaises(WithdrawalRequestError):
            send_withdrawal_request(self.credentials, 5000, WALLET, '@merchant', 10000, session=self.session)

    @override_settings(TELEGRAM_BOT_TOKEN='')
    def test_unconfigured_relay_raises(self):
        with self.assertRaises(WithdrawalRequestError):
            send_withdrawal_request(self.credentials, 5000, WALLET, '@merchant', 10000, session=self.session)
        self.session.post.assert_not_called()
