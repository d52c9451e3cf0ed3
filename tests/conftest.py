"""
Pytest configuration and fixtures for sfind tests
"""

import threading

import pytest

from sfind.config import Config


ACCOUNT_ID = '0012500001Lhk3hAAB'
CONTACT_ID = '0032500001AbCdEAAZ'
ASSET_ID = '02i2500000HTaW9AAL'
OPPORTUNITY_ID = '0062500000XyZabAAB'


class FakeClient:
    """
    A Salesforce client answering queries from a list of rules.

    Each rule is a (fragment, response) pair: the first rule whose fragment
    appears in the SOQL statement wins. A response is either a list of rows
    or an exception instance to raise. Unmatched queries fail the test.
    """

    def __init__(self, rules=()):
        self.rules = list(rules)
        self.queries = []
        self._lock = threading.Lock()
        self.instance_url = None

    def execute(self, soql):
        with self._lock:
            self.queries.append(soql)
        for fragment, response in self.rules:
            if fragment in soql:
                if isinstance(response, Exception):
                    raise response
                return [dict(row) for row in response]
        raise AssertionError(f"unexpected query: {soql}")

    def queries_for(self, kind):
        return [q for q in self.queries if f" FROM {kind} " in q]


@pytest.fixture
def config():
    """Default configuration."""
    return Config()


@pytest.fixture
def account_row():
    return {
        'Id': ACCOUNT_ID,
        'Name': 'Acme Corp',
        'AccountNumber': 'A-42',
        'BillingCity': 'Rome',
        'CreatedDate': '2020-01-02T10:00:00.000+0000',
    }


@pytest.fixture
def contact_row():
    return {
        'Id': CONTACT_ID,
        'Email': 'who@example.com',
        'FirstName': 'Ada',
        'LastName': 'Lovelace',
        'AccountId': ACCOUNT_ID,
    }


@pytest.fixture
def opportunity_row():
    return {
        'Id': OPPORTUNITY_ID,
        'Name': 'Big deal',
        'AccountId': ACCOUNT_ID,
        'RecordType.Name': 'New Business',
        'StageName': 'Closed Won',
        'Amount': 1000.0,
        'IsWon': True,
        'IsClosed': True,
    }


@pytest.fixture
def asset_row():
    return {
        'Id': ASSET_ID,
        'Name': 'Widget',
        'AccountId': ACCOUNT_ID,
        'ContactId': CONTACT_ID,
        'Product2.ProductCode': 'W-1',
        'Product2.Name': 'Widget Pro',
        'Quantity': 3,
    }


@pytest.fixture
def account_rules(account_row, contact_row, opportunity_row, asset_row):
    """Rules answering every query of an account-rooted search."""
    return [
        (f"FROM Account WHERE Id = '{ACCOUNT_ID}'", [account_row]),
        (f"FROM Opportunity WHERE AccountId = '{ACCOUNT_ID}'", [opportunity_row]),
        (f"FROM Asset WHERE AccountId = '{ACCOUNT_ID}'", [asset_row]),
        (f"FROM Contact WHERE AccountId = '{ACCOUNT_ID}'", [contact_row]),
    ]
