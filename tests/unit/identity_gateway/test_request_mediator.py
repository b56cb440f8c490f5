"""Unit tests for RequestMediator flow validation and request construction."""

from __future__ import annotations

import pytest

from identity_gateway.app.errors import BadRequestError
from identity_gateway.app.mediation import RequestMediator, validate_redirect_uri
from identity_gateway.app.security.claims import CredentialClaim

from gateway_fakes import RECORD_A, RECORD_B


@pytest.fixture
def mediator() -> RequestMediator:
    return RequestMediator()


@pytest.fixture
def claim() -> CredentialClaim:
    return CredentialClaim.from_record(RECORD_A)


@pytest.fixture
def user_claim(claim) -> CredentialClaim:
    return claim.with_username('alice')


class TestAuthenticate:
    def test_credentials_come_from_claim(self, mediator, claim):
        req = mediator.authenticate(claim, username='alice', password='pw')
        assert req.to_payload() == {
            'tenant_id': '1',
            'client_id': 'iam-client-1',
            'client_secret': 'iam-secret-1',
            'username': 'alice',
            'password': 'pw',
        }

    @pytest.mark.parametrize('username,password,field', [
        (None, 'pw', 'username'),
        ('   ', 'pw', 'username'),
        ('alice', None, 'password'),
        ('alice', '', 'password'),
    ])
    def test_blank_inputs_rejected(self, mediator, claim, username, password, field):
        with pytest.raises(BadRequestError) as exc_info:
            mediator.authenticate(claim, username=username, password=password)
        assert exc_info.value.field == field

    def test_request_repr_hides_password(self, mediator, claim):
        req = mediator.authenticate(claim, username='alice', password='hunter2')
        assert 'hunter2' not in repr(req)
        assert 'iam-secret-1' not in repr(req)


class TestAccessTokenFlows:
    def test_session_status_carries_derived_claims(self, mediator, user_claim):
        req = mediator.session_status(user_claim, access_token='at-1')
        assert req.access_token == 'at-1'
        assert req.claim_value('username') == 'alice'
        assert req.claim_value('tenantId') == '1'
        assert req.claim_value('clientId') == 'clientA'
        assert len(req.claims) == 3

    def test_user_profile_payload(self, mediator, user_claim):
        payload = mediator.user_profile(user_claim, access_token='at-1').to_payload()
        assert payload['access_token'] == 'at-1'
        assert {'key': 'username', 'value': 'alice'} in payload['claims']

    def test_claim_without_username_is_programming_error(self, mediator, claim):
        with pytest.raises(ValueError):
            mediator.session_status(claim, access_token='at-1')


class TestServiceAccountAndEndSession:
    def test_service_account_token(self, mediator):
        claim = CredentialClaim.from_record(RECORD_B)
        assert mediator.service_account_token(claim).to_payload() == {
            'tenant_id': '2',
            'client_id': 'iam-client-2',
            'client_secret': 'iam-secret-2',
        }

    @pytest.mark.parametrize('value', [None, '', '  ', 42, ['rt']])
    def test_refresh_token_required(self, mediator, value):
        with pytest.raises(BadRequestError) as exc_info:
            mediator.require_refresh_token(value)
        assert exc_info.value.field == 'refresh_token'

    def test_end_session(self, mediator, claim):
        req = mediator.end_session(claim, refresh_token='rt-1')
        assert req.tenant_id == '1'
        assert req.client_id == 'iam-client-1'
        assert req.refresh_token == 'rt-1'


class TestAuthorize:
    def test_valid_request(self, mediator):
        req = mediator.authorize(
            client_id='web-app',
            redirect_uri='https://app.example.com/callback',
            tenant_id='10000',
        )
        assert req.tenant_id == 10000
        assert req.to_payload() == {
            'client_id': 'web-app',
            'redirect_uri': 'https://app.example.com/callback',
            'tenant_id': 10000,
        }

    def test_tenant_is_optional(self, mediator):
        req = mediator.authorize(client_id='web-app', redirect_uri='http://localhost:3000/cb')
        assert 'tenant_id' not in req.to_payload()

    def test_missing_client_id(self, mediator):
        with pytest.raises(BadRequestError) as exc_info:
            mediator.authorize(client_id=None, redirect_uri='https://app.example.com/cb')
        assert exc_info.value.field == 'client_id'

    def test_non_integer_tenant(self, mediator):
        with pytest.raises(BadRequestError) as exc_info:
            mediator.authorize(
                client_id='web-app',
                redirect_uri='https://app.example.com/cb',
                tenant_id='tenant-one',
            )
        assert exc_info.value.field == 'tenant_id'


class TestRedirectUri:
    @pytest.mark.parametrize('uri', [
        'https://app.example.com/callback',
        'http://localhost:8080/cb?state=1',
    ])
    def test_accepted(self, uri):
        assert validate_redirect_uri(uri) == uri

    @pytest.mark.parametrize('uri', [
        None,
        '',
        '/relative/path',
        'ftp://files.example.com/cb',
        'javascript:alert(1)',
        'https:///no-host',
        'https://app.example.com/cb#fragment',
        'https://app.example.com/cb#',
        'https://app.example.com:notaport/cb',
    ])
    def test_rejected(self, uri):
        with pytest.raises(BadRequestError) as exc_info:
            validate_redirect_uri(uri)
        assert exc_info.value.field == 'redirect_uri'


class TestToken:
    def test_authorization_code_grant(self, mediator, claim):
        req = mediator.token(
            claim,
            grant_type='authorization_code',
            code='abc',
            redirect_uri='https://app.example.com/cb',
        )
        assert req.to_payload() == {
            'tenant_id': '1',
            'client_id': 'iam-client-1',
            'client_secret': 'iam-secret-1',
            'grant_type': 'authorization_code',
            'code': 'abc',
            'redirect_uri': 'https://app.example.com/cb',
        }

    def test_grant_inferred_from_code(self, mediator, claim):
        req = mediator.token(claim, code='abc', redirect_uri='https://app.example.com/cb')
        assert req.grant_type == 'authorization_code'

    def test_grant_inferred_from_username(self, mediator, claim):
        req = mediator.token(claim, username='alice', password='pw')
        assert req.grant_type == 'password'
        assert req.code is None

    def test_refresh_grant(self, mediator, claim):
        req = mediator.token(claim, grant_type='refresh_token', refresh_token='rt-1')
        assert req.to_payload()['refresh_token'] == 'rt-1'

    def test_client_credentials_grant_needs_no_inputs(self, mediator, claim):
        payload = mediator.token(claim, grant_type='client_credentials').to_payload()
        assert set(payload) == {'tenant_id', 'client_id', 'client_secret', 'grant_type'}

    def test_inputs_of_other_grants_are_dropped(self, mediator, claim):
        req = mediator.token(
            claim, grant_type='client_credentials', username='alice', password='pw',
        )
        assert req.username is None
        assert req.password is None

    def test_no_grant_and_nothing_to_infer(self, mediator, claim):
        with pytest.raises(BadRequestError) as exc_info:
            mediator.token(claim)
        assert exc_info.value.field == 'grant_type'

    def test_unsupported_grant(self, mediator, claim):
        with pytest.raises(BadRequestError) as exc_info:
            mediator.token(claim, grant_type='implicit')
        assert exc_info.value.field == 'grant_type'

    @pytest.mark.parametrize('kwargs,field', [
        ({'grant_type': 'authorization_code', 'redirect_uri': 'https://a.example.com'}, 'code'),
        ({'grant_type': 'authorization_code', 'code': 'abc'}, 'redirect_uri'),
        ({'grant_type': 'password', 'username': 'alice'}, 'password'),
        ({'grant_type': 'refresh_token'}, 'refresh_token'),
    ])
    def test_missing_grant_inputs(self, mediator, claim, kwargs, field):
        with pytest.raises(BadRequestError) as exc_info:
            mediator.token(claim, **kwargs)
        assert exc_info.value.field == field


class TestCredentialsAndDiscovery:
    def test_credentials_request_from_claim(self, mediator, claim):
        payload = mediator.credentials(claim).to_payload()['credentials']
        assert payload['client_id'] == 'clientA'
        assert payload['client_secret'] == 'secretA'
        assert payload['iam_client_id'] == 'iam-client-1'
        assert payload['federated_client_id'] == 'fed-client-1'
        assert payload['client_secret_expires_at'] == 0

    @pytest.mark.parametrize('value', [None, '', '   '])
    def test_client_id_required(self, mediator, value):
        with pytest.raises(BadRequestError) as exc_info:
            mediator.require_client_id(value)
        assert exc_info.value.field == 'client_id'

    def test_oidc_configuration(self, mediator):
        assert mediator.oidc_configuration(client_id=' web-app ').to_payload() == {
            'client_id': 'web-app',
        }
