import json
from unittest import mock

ACCESS_KEY = '3f2b8c1e-9a4d-4e7f-b1c2-5d6e7f8a9b0c'
ACCOUNT_GUID = 'a1b2c3d4-e5f6-4a7b-8c9d-0e1f2a3b4c5d'

CREDENTIALS = {
    'access_key': ACCESS_KEY,
    'currency_code': '643',
    'account_number': '14744',
    'client_id': '52019',
    'account_guid': ACCOUNT_GUID,
    'merchant_name': 'Coffee Corner',
}


def fake_response(status_code=200, body=None, text=None):
    response = mock.Mock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.text = text if text is not None else json.dumps(body)
    return response
