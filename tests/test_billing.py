"""Tests for Stripe billing"""
import hashlib
import hmac
import json
import time
import pytest
from unittest.mock import patch
from turntable_ai.services.billing_services import handle_event, is_pro_from_plan, plan_from_stripe_status
from turntable_ai.services.database import get_billing_profile, link_stripe_customer

WEBHOOK_SECRET = 'whsec_test_123'


def sign(payload: str, secret: str = WEBHOOK_SECRET, timestamp: int = None) -> str:
    timestamp = timestamp or int(time.time())
    digest = hmac.new(secret.encode('utf-8'), f'{timestamp}.{payload}'.encode('utf-8'), hashlib.sha256).hexdigest()
    return f't={timestamp},v1={digest}'


def subscription_event(status: str, customer: str = 'cus_1', event_type: str = 'customer.subscription.updated'):
    return {
        'id': 'evt_1',
        'type': event_type,
        'data': {'object': {'id': 'sub_1', 'customer': customer, 'status': status,
                            'current_period_end': 1767225600}},
    }


class TestPlanMapping:
    """Test subscription status to plan"""

    @pytest.mark.parametrize('status', ['active', 'trialing', 'past_due', 'unpaid', 'ACTIVE'])
    def test_pro_statuses(self, status):
        assert plan_from_stripe_status(status) == 'pro'

    @pytest.mark.parametrize('status', ['canceled', 'incomplete', 'incomplete_expired', 'paused', '', None])
    def test_free_statuses(self, status):
        assert plan_from_stripe_status(status) == 'free'

    def test_is_pro(self):
        assert is_pro_from_plan('pro') is True
        assert is_pro_from_plan('free') is False


class TestHandleEvent:
    """Test event application"""

    def test_subscription_update_sets_plan(self, sample_user):
        link_stripe_customer(sample_user.id, 'cus_1')
        handle_event(subscription_event('active'))

        profile = get_billing_profile(sample_user.id)
        assert profile.plan == 'pro'
        assert profile.is_pro is True
        assert profile.stripe_subscription_id == 'sub_1'
        assert profile.current_period_end.year == 2026

    def test_subscription_deleted_downgrades(self, sample_user):
        link_stripe_customer(sample_user.id, 'cus_1')
        handle_event(subscription_event('active'))
        handle_event(subscription_event('canceled', event_type='customer.subscription.deleted'))

        profile = get_billing_profile(sample_user.id)
        assert profile.plan == 'free'
        assert profile.is_pro is False

    def test_unknown_customer_is_noop(self, sample_user):
        link_stripe_customer(sample_user.id, 'cus_1')
        handle_event(subscription_event('active', customer='cus_unknown'))
        assert get_billing_profile(sample_user.id).plan == 'free'

    def test_checkout_completed_is_active(self, sample_user):
        link_stripe_customer(sample_user.id, 'cus_1')
        handle_event({'type': 'checkout.session.completed',
                      'data': {'object': {'customer': 'cus_1', 'subscription': 'sub_9'}}})

        profile = get_billing_profile(sample_user.id)
        assert profile.plan == 'pro'
        assert profile.stripe_subscription_id == 'sub_9'

    def test_checkout_links_signed_in_user(self, sample_user):
        handle_event({'type': 'checkout.session.completed',
                      'data': {'object': {'customer': 'cus_1', 'subscription': 'sub_9',
                                          'client_reference_id': str(sample_user.id)}}})

        profile = get_billing_profile(sample_user.id)
        assert profile.plan == 'pro'
        assert profile.stripe_customer_id == 'cus_1'

    def test_invoice_paid_retrieves_subscription(self, sample_user):
        link_stripe_customer(sample_user.id, 'cus_1')
        with patch('turntable_ai.services.billing_services.stripe.Subscription.retrieve') as retrieve:
            retrieve.return_value = {'id': 'sub_2', 'status': 'past_due',
                                     'items': {'data': [{'current_period_end': 1767225600}]}}
            handle_event({'type': 'invoice.payment_succeeded',
                          'data': {'object': {'customer': 'cus_1', 'subscription': 'sub_2'}}})

        retrieve.assert_called_once_with('sub_2', api_key='sk_test_123')
        profile = get_billing_profile(sample_user.id)
        assert profile.plan == 'pro'
        assert profile.stripe_subscription_status == 'past_due'
        assert profile.current_period_end is not None


class TestStripeWebhookRoute:
    """Test the webhook HTTP contract"""

    def test_get_reports_alive(self, client):
        response = client.get('/api/stripe/webhook')
        assert response.status_code == 200
        assert response.json()['ok'] is True

    def test_missing_signature_touches_nothing(self, client):
        with patch('turntable_ai.routes.billing_routes.handle_event') as handle:
            response = client.post('/api/stripe/webhook', content='{}')
        assert response.status_code == 400
        assert response.text == 'Missing stripe-signature header'
        handle.assert_not_called()

    def test_bad_signature(self, client):
        with patch('turntable_ai.routes.billing_routes.handle_event') as handle:
            response = client.post('/api/stripe/webhook', content='{}',
                                   headers={'stripe-signature': sign('{}', secret='whsec_wrong')})
        assert response.status_code == 400
        assert response.text.startswith('Webhook Error:')
        handle.assert_not_called()

    def test_missing_secret(self, client):
        with patch('turntable_ai.routes.billing_routes.STRIPE_WEBHOOK_SECRET', None):
            response = client.post('/api/stripe/webhook', content='{}', headers={'stripe-signature': 'x'})
        assert response.status_code == 500

    def test_signed_event_updates_profile(self, client, sample_user):
        link_stripe_customer(sample_user.id, 'cus_1')
        payload = json.dumps(subscription_event('trialing'))

        response = client.post('/api/stripe/webhook', content=payload,
                               headers={'stripe-signature': sign(payload), 'content-type': 'application/json'})

        assert response.status_code == 200
        assert response.text == 'ok'
        assert get_billing_profile(sample_user.id).plan == 'pro'

    def test_handler_failure_is_500(self, client):
        payload = json.dumps(subscription_event('active'))
        with patch('turntable_ai.routes.billing_routes.handle_event', side_effect=RuntimeError('db down')):
            response = client.post('/api/stripe/webhook', content=payload, headers={'stripe-signature': sign(payload)})
        assert response.status_code == 500
        assert response.text == 'Webhook handler failed: db down'


class TestBillingProfileRoute:
    """Test the current plan endpoint"""

    def test_requires_sign_in(self, client):
        assert client.get('/api/billing/profile').status_code == 401

    def test_free_without_profile(self, signed_in_client):
        assert signed_in_client.get('/api/billing/profile').json()['plan'] == 'free'
