"""
Tests for the Salesforce client wrapper
"""

from collections import OrderedDict
from unittest.mock import MagicMock, patch

import pytest
import requests
from simple_salesforce.exceptions import (
    SalesforceAuthenticationFailed,
    SalesforceExpiredSession,
    SalesforceGeneralError,
    SalesforceMalformedRequest,
    SalesforceRefusedRequest,
)

from sfind.client import SalesforceClient, TimeoutSession, flatten, translate_error
from sfind.errors import (
    AuthError, ConfigError, NetworkError, RateLimited, RemoteQueryError,
)


URL = 'https://example.my.salesforce.com/services/data/v59.0/query/'


@pytest.fixture
def sf():
    mock = MagicMock()
    mock.sf_instance = 'example.my.salesforce.com'
    return mock


class TestExecute:

    def test_records_are_flattened(self, sf):
        sf.query_all.return_value = {
            'totalSize': 1,
            'done': True,
            'records': [OrderedDict([
                ('attributes', {'type': 'Opportunity', 'url': '/x'}),
                ('Id', '0062500000XyZabAAB'),
                ('RecordType', OrderedDict([
                    ('attributes', {'type': 'RecordType'}),
                    ('Name', 'New Business'),
                ])),
                ('Amount', 10.5),
            ])],
        }
        client = SalesforceClient(sf=sf, timeout=12)
        records = client.execute("SELECT Id FROM Opportunity WHERE Id = 'x'")

        assert records == [{'Id': '0062500000XyZabAAB', 'RecordType.Name': 'New Business', 'Amount': 10.5}]
        sf.query_all.assert_called_once_with("SELECT Id FROM Opportunity WHERE Id = 'x'", timeout=12)

    def test_no_records(self, sf):
        sf.query_all.return_value = {'totalSize': 0, 'done': True, 'records': []}
        client = SalesforceClient(sf=sf)
        assert client.execute("SELECT Id FROM Account WHERE Id = 'x'") == []

    def test_timeout(self, sf):
        sf.query_all.side_effect = requests.exceptions.ReadTimeout('read timed out')
        client = SalesforceClient(sf=sf, timeout=5)
        with pytest.raises(NetworkError, match='timeout after 5s'):
            client.execute('SELECT Id FROM Account')

    def test_connection_error(self, sf):
        sf.query_all.side_effect = requests.exceptions.ConnectionError('connection refused')
        client = SalesforceClient(sf=sf)
        with pytest.raises(NetworkError, match='connection refused'):
            client.execute('SELECT Id FROM Account')

    def test_malformed_query(self, sf):
        sf.query_all.side_effect = SalesforceMalformedRequest(
            URL, 400, 'query', [{'errorCode': 'INVALID_FIELD', 'message': "No such column 'Foo__c'"}])
        client = SalesforceClient(sf=sf)
        with pytest.raises(RemoteQueryError, match="INVALID_FIELD: No such column 'Foo__c'"):
            client.execute('SELECT Foo__c FROM Account')

    def test_instance_url(self, sf):
        assert SalesforceClient(sf=sf).instance_url == 'https://example.my.salesforce.com'


class TestTranslateError:

    def test_expired_session(self):
        err = SalesforceExpiredSession(
            URL, 401, 'query', [{'errorCode': 'INVALID_SESSION_ID', 'message': 'Session expired'}])
        translated = translate_error(err)
        assert isinstance(translated, AuthError)
        assert str(translated) == 'INVALID_SESSION_ID: Session expired'

    def test_refused(self):
        err = SalesforceRefusedRequest(
            URL, 403, 'query', [{'errorCode': 'INSUFFICIENT_ACCESS', 'message': 'nope'}])
        assert isinstance(translate_error(err), AuthError)

    def test_rate_limited(self):
        err = SalesforceRefusedRequest(
            URL, 403, 'query',
            [{'errorCode': 'REQUEST_LIMIT_EXCEEDED', 'message': 'TotalRequests Limit exceeded.'}])
        translated = translate_error(err)
        assert isinstance(translated, RateLimited)
        assert str(translated) == 'REQUEST_LIMIT_EXCEEDED: TotalRequests Limit exceeded.'

    def test_general_error(self):
        err = SalesforceGeneralError(URL, 500, 'query', 'internal error')
        assert isinstance(translate_error(err), RemoteQueryError)

    def test_authentication_failed(self):
        err = SalesforceAuthenticationFailed('INVALID_LOGIN', 'Invalid username or password')
        assert isinstance(translate_error(err), AuthError)


class TestConnection:

    def test_connects_lazily(self, sf):
        with patch('sfind.client.Salesforce', return_value=sf) as factory:
            client = SalesforceClient(credentials={'session_id': 'abc', 'instance_url': 'https://x'})
            assert client.instance_url is None
            factory.assert_not_called()

            sf.query_all.return_value = {'records': []}
            client.execute('SELECT Id FROM Account')
            client.execute('SELECT Id FROM Contact')

        factory.assert_called_once()
        kwargs = factory.call_args.kwargs
        assert kwargs['session_id'] == 'abc'
        assert kwargs['instance_url'] == 'https://x'

    def test_login_uses_the_configured_timeout(self, sf):
        sf.query_all.return_value = {'records': []}
        with patch('sfind.client.Salesforce', return_value=sf) as factory:
            SalesforceClient(credentials={'session_id': 'abc', 'instance_url': 'https://x'},
                             timeout=7).execute('SELECT Id FROM Account')

        session = factory.call_args.kwargs['session']
        assert isinstance(session, TimeoutSession)
        assert session.timeout == 7

    def test_login_timeout(self):
        with patch('sfind.client.Salesforce', side_effect=requests.exceptions.ConnectTimeout('slow')):
            client = SalesforceClient(credentials={'username': 'u', 'password': 'p', 'security_token': 't'},
                                      timeout=5)
            with pytest.raises(NetworkError, match='login timeout after 5s'):
                client.execute('SELECT Id FROM Account')

    def test_authentication_failure(self):
        with patch('sfind.client.Salesforce',
                   side_effect=SalesforceAuthenticationFailed('INVALID_LOGIN', 'bad password')):
            client = SalesforceClient(credentials={'username': 'u', 'password': 'p', 'security_token': 't'})
            with pytest.raises(AuthError, match='authentication failed'):
                client.execute('SELECT Id FROM Account')

    def test_credentials_from_environment(self, monkeypatch, sf):
        monkeypatch.setattr('sfind.config.load_dotenv', lambda: None)
        for var in ('SF_SESSION_ID', 'SF_INSTANCE_URL', 'SF_DOMAIN'):
            monkeypatch.delenv(var, raising=False)
        monkeypatch.setenv('SF_USERNAME', 'who@example.com')
        monkeypatch.setenv('SF_PASSWORD', 'secret')
        monkeypatch.setenv('SF_SECURITY_TOKEN', 'token')

        sf.query_all.return_value = {'records': []}
        with patch('sfind.client.Salesforce', return_value=sf) as factory:
            SalesforceClient().execute('SELECT Id FROM Account')

        kwargs = factory.call_args.kwargs
        kwargs.pop('session')
        assert kwargs == {
            'username': 'who@example.com',
            'password': 'secret',
            'security_token': 'token',
            'domain': 'login',
        }

    def test_missing_credentials_are_reported_on_first_query(self, monkeypatch):
        monkeypatch.setattr('sfind.config.load_dotenv', lambda: None)
        for var in ('SF_SESSION_ID', 'SF_INSTANCE_URL', 'SF_USERNAME',
                    'SF_PASSWORD', 'SF_SECURITY_TOKEN'):
            monkeypatch.delenv(var, raising=False)

        client = SalesforceClient()
        with pytest.raises(ConfigError, match='SF_USERNAME, SF_PASSWORD, SF_SECURITY_TOKEN'):
            client.execute('SELECT Id FROM Account')


class TestTimeoutSession:

    def test_default_timeout_is_applied(self):
        with patch('requests.Session.request') as request:
            TimeoutSession(12).post('https://login.salesforce.com/services/Soap/u/59.0', data='x')
        assert request.call_args.kwargs['timeout'] == 12

    def test_explicit_timeout_wins(self):
        with patch('requests.Session.request') as request:
            TimeoutSession(12).get('https://example.my.salesforce.com/', timeout=3)
        assert request.call_args.kwargs['timeout'] == 3


class TestFlatten:

    def test_null_relationship(self):
        assert flatten({'Id': '1', 'RecordType': None}) == {'Id': '1', 'RecordType': None}

    def test_nested(self):
        record = {'Product2': {'attributes': {}, 'Family': {'attributes': {}, 'Name': 'x'}}}
        assert flatten(record) == {'Product2.Family.Name': 'x'}
