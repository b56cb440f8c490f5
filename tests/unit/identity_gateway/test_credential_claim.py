"""Unit tests for CredentialClaim construction and helpers."""

from __future__ import annotations

import dataclasses

import pytest

from identity_gateway.app.security.claims import CredentialClaim

from gateway_fakes import NOW, RECORD_A, RECORD_B


def _claim(**overrides) -> CredentialClaim:
    values = dict(
        tenant_id='1',
        iam_client_id='iam-client-1',
        iam_client_secret='iam-secret-1',
        platform_client_id='clientA',
        platform_client_secret='secretA',
        platform_client_id_issued_at=1_700_000_000,
        platform_client_secret_expires_at=0,
    )
    values.update(overrides)
    return CredentialClaim(**values)


class TestConstruction:
    def test_minimal_claim_has_empty_federated_fields(self):
        claim = _claim()
        assert claim.federated_client_id == ''
        assert claim.federated_client_secret == ''
        assert claim.username is None

    @pytest.mark.parametrize('field', [
        'tenant_id',
        'iam_client_id',
        'iam_client_secret',
        'platform_client_id',
        'platform_client_secret',
    ])
    def test_empty_required_field_raises(self, field):
        with pytest.raises(ValueError, match=field):
            _claim(**{field: ''})

    def test_claim_is_immutable(self):
        claim = _claim()
        with pytest.raises(dataclasses.FrozenInstanceError):
            claim.tenant_id = '9'  # type: ignore[misc]

    def test_repr_hides_secrets(self):
        text = repr(_claim(federated_client_secret='fed-secret'))
        assert 'secretA' not in text
        assert 'iam-secret-1' not in text
        assert 'fed-secret' not in text
        assert 'clientA' in text


class TestFromRecord:
    def test_maps_record_columns(self):
        claim = CredentialClaim.from_record(RECORD_A)
        assert claim.tenant_id == '1'
        assert claim.platform_client_id == 'clientA'
        assert claim.platform_client_secret == 'secretA'
        assert claim.iam_client_id == 'iam-client-1'
        assert claim.federated_client_id == 'fed-client-1'
        assert claim.platform_client_id_issued_at == 1_700_000_000
        assert claim.platform_client_secret_expires_at == 0

    def test_username_is_attached(self):
        claim = CredentialClaim.from_record(RECORD_A, username='alice')
        assert claim.username == 'alice'

    def test_numeric_tenant_is_stringified(self):
        claim = CredentialClaim.from_record({**RECORD_A, 'tenant_id': 10000})
        assert claim.tenant_id == '10000'

    def test_missing_federated_columns_are_allowed(self):
        record = {k: v for k, v in RECORD_A.items() if not k.startswith('federated_')}
        claim = CredentialClaim.from_record(record)
        assert claim.federated_client_id == ''

    @pytest.mark.parametrize('column', ['iam_client_secret', 'client_id_issued_at', 'client_secret_expires_at'])
    def test_missing_required_column_raises(self, column):
        record = {k: v for k, v in RECORD_A.items() if k != column}
        with pytest.raises(ValueError, match=column):
            CredentialClaim.from_record(record)


class TestHelpers:
    def test_with_username_returns_new_claim(self):
        claim = _claim()
        anchored = claim.with_username('alice')
        assert anchored.username == 'alice'
        assert claim.username is None
        assert anchored.tenant_id == claim.tenant_id

    def test_zero_expiry_never_expires(self):
        assert _claim(platform_client_secret_expires_at=0).is_expired(NOW * 10) is False

    def test_future_expiry_is_not_expired(self):
        assert CredentialClaim.from_record(RECORD_B).is_expired(NOW) is False

    def test_past_expiry_is_expired(self):
        claim = _claim(platform_client_secret_expires_at=int(NOW) - 1)
        assert claim.is_expired(NOW) is True

    def test_expiry_boundary_is_expired(self):
        claim = _claim(platform_client_secret_expires_at=int(NOW))
        assert claim.is_expired(NOW) is True

    def test_log_fields_only_expose_identifiers(self):
        fields = _claim().log_fields()
        assert fields == {'tenant_id': '1', 'client_id': 'clientA'}
