"""Tests for the sales routes"""
from unittest.mock import patch

SALES_BODY = {
    'startDate': '2025-01-01',
    'endDate': '2025-01-07',
    'store': 'Main St',
    'inputs': {'totalSales': 7000, 'orders': 350, 'labor': 2800, 'cogs': 2100},
    'posText': '',
}


class TestSalesReport:
    """Test /api/sales"""

    def test_health(self, client):
        assert client.get('/api/sales').json() == {'ok': True, 'status': 'alive'}

    def test_invalid_task(self, client, mock_chatgroq):
        response = client.post('/api/sales', json={'task': 'summary', 'period': 'last week'})
        assert response.status_code == 400
        assert response.json()['error'] == "Invalid task. Use 'recap' or 'forecast'."
        mock_chatgroq.invoke.assert_not_called()

    def test_missing_period(self, client):
        response = client.post('/api/sales', json={'task': 'recap'})
        assert response.status_code == 400
        assert response.json()['error'] == "Missing 'period'."

    def test_recap(self, client, mock_chatgroq):
        response = client.post('/api/sales', json={'task': 'forecast', 'period': 'next week', 'data': 'Mon 900'})
        assert response.json() == {'ok': True, 'result': 'Test AI generated reply'}
        messages = mock_chatgroq.invoke.call_args.args[0]
        assert 'Sales Forecast' in messages[1][1]


class TestSalesAi:
    """Test /api/sales-ai"""

    def test_missing_fields(self, client):
        response = client.post('/api/sales-ai', json={'startDate': '2025-01-01'})
        assert response.status_code == 400
        assert response.json()['error'] == 'Missing required fields (startDate, endDate, inputs)'

    def test_without_ai_key(self, client, mock_chatgroq):
        with patch('turntable_ai.routes.sales_routes.GROQ_API_KEY', None):
            response = client.post('/api/sales-ai', json=SALES_BODY)

        assert response.status_code == 200
        data = response.json()
        assert data['summary'].startswith('AI disabled')
        assert data['kpis']['revenue'] == '$7,000.00'
        assert data['kpis']['avgTicket'] == '$20.00'
        assert data['kpis']['laborPct'] == '40%'
        assert len(data['forecast']) == 7
        assert data['forecast'][0] == {'day': 1, 'sales': 1000}
        assert data['alerts'] == ['Labor is 40.0% of sales (target 35% or less).']
        assert data['debug']['computedFrom'] == {'totals': True, 'cogs': True, 'labor': True}
        mock_chatgroq.invoke.assert_not_called()

    def test_bullets_become_actions(self, client, mock_chatgroq):
        mock_chatgroq.invoke.return_value.content = (
            'Sales were steady.\n- Push cold brew\n* Trim Tuesday labor\n• Bundle pastries'
        )
        data = client.post('/api/sales-ai', json=SALES_BODY).json()
        assert data['actions'] == ['Push cold brew', 'Trim Tuesday labor', 'Bundle pastries']
        assert data['summary'].startswith('Sales were steady.')

    def test_no_bullets_uses_default_actions(self, client):
        data = client.post('/api/sales-ai', json=SALES_BODY).json()
        assert len(data['actions']) == 3

    def test_alert_email(self, client):
        with patch('turntable_ai.routes.sales_routes.send_email') as mock_send:
            data = client.post('/api/sales-ai', json={**SALES_BODY, 'alertEmail': 'owner@cafe.com'}).json()
        assert data['alertEmailSent'] is True
        assert mock_send.call_args.kwargs['subject'] == 'KPI alert for Main St'


class TestSalesRecap:
    """Test /api/sales-recap"""

    def test_missing_key(self, client):
        with patch('turntable_ai.routes.sales_routes.GROQ_API_KEY', None):
            response = client.post('/api/sales-recap', json={'totalSales': 1000})
        assert response.status_code == 500
        assert response.json()['error'] == 'Missing GROQ_API_KEY'

    def test_computes_kpis_when_absent(self, client):
        with patch('turntable_ai.routes.sales_routes.generate_sales_recap', return_value='# Recap') as recap:
            response = client.post('/api/sales-recap', json={
                'totalSales': '1100', 'orders': '50', 'refunds': '100', 'cogs': '300', 'laborCost': '250'})
        assert response.json() == {'output': '# Recap'}
        computed = recap.call_args.args[1]
        assert computed['netSales'] == 1000
        assert computed['laborPct'] == 25


class TestMenuMix:
    """Test /api/sales/menu-mix"""

    def test_requires_rows(self, client):
        response = client.post('/api/sales/menu-mix', json={})
        assert response.status_code == 400
        assert response.json()['error'] == 'Provide menu items or menuText.'

    def test_items(self, client):
        response = client.post('/api/sales/menu-mix', json={'items': [
            {'name': 'Latte', 'units': 100, 'price': 5, 'cost': 1},
            {'name': 'Bagel', 'units': 10, 'price': 2, 'cost': 1.5},
        ]})
        items = {i['name']: i for i in response.json()['items']}
        assert items['Latte']['category'] == 'star'
        assert items['Latte']['unitMarginDisplay'] == '$4.00'
        assert items['Bagel']['category'] == 'dog'

    def test_menu_text(self, client):
        response = client.post('/api/sales/menu-mix', json={'menuText': 'Latte,100,5,1\nDrip,20,3,2'})
        assert [i['name'] for i in response.json()['items']] == ['Latte', 'Drip']
