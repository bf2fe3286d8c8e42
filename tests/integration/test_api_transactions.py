"""Integration tests for transaction ledger API endpoints."""

from decimal import Decimal

from sqlalchemy.orm import Session

from models import Holding, Transaction
from tests.fixtures import create_holding


def _buy(client, portfolio_id: str, quantity: str = "10", price: str = "100", **extra):
    return client.post(
        f"/api/portfolios/{portfolio_id}/transactions",
        json={"asset_id": "AAPL", "type": "buy", "quantity": quantity, "price": price, **extra},
    )


class TestRecordTransaction:
    def test_record_buy(self, client, db: Session, portfolio, aapl):
        response = _buy(client, portfolio.id)

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "completed"
        assert Decimal(data["total_amount"]) == Decimal("1000")
        assert Decimal(data["fee"]) == Decimal("1")
        assert data["executed_at"] is not None

        holding = db.query(Holding).filter_by(portfolio_id=portfolio.id).one()
        assert holding.quantity == Decimal("10")

    def test_oversell_returns_conflict_and_keeps_failed_row(
        self, client, db: Session, portfolio, aapl
    ):
        create_holding(db, portfolio, aapl, Decimal("2"), Decimal("100"))
        db.commit()

        response = client.post(
            f"/api/portfolios/{portfolio.id}/transactions",
            json={"asset_id": "AAPL", "type": "sell", "quantity": "5", "price": "150"},
        )

        assert response.status_code == 409
        assert "Insufficient holdings" in response.json()["detail"]
        failed = db.query(Transaction).one()
        assert failed.status == "failed"
        assert db.query(Holding).one().quantity == Decimal("2")

    def test_buy_without_asset_rejected(self, client, portfolio):
        response = client.post(
            f"/api/portfolios/{portfolio.id}/transactions",
            json={"type": "buy", "quantity": "1", "price": "1"},
        )
        assert response.status_code == 400

    def test_unknown_portfolio(self, client, aapl):
        response = _buy(client, "nonexistent")
        assert response.status_code == 404

    def test_negative_quantity_rejected(self, client, portfolio, aapl):
        response = _buy(client, portfolio.id, quantity="-1")
        assert response.status_code == 422


class TestListAndStats:
    def test_list_with_filters(self, client, portfolio, aapl):
        _buy(client, portfolio.id)
        client.post(
            f"/api/portfolios/{portfolio.id}/transactions",
            json={"asset_id": "AAPL", "type": "sell", "quantity": "4", "price": "150"},
        )

        all_tx = client.get(f"/api/portfolios/{portfolio.id}/transactions").json()
        sells = client.get(
            f"/api/portfolios/{portfolio.id}/transactions", params={"type": "sell"}
        ).json()

        assert len(all_tx) == 2
        assert [t["type"] for t in sells] == ["sell"]

    def test_stats(self, client, portfolio, aapl):
        _buy(client, portfolio.id)
        client.post(
            f"/api/portfolios/{portfolio.id}/transactions",
            json={"asset_id": "AAPL", "type": "sell", "quantity": "4", "price": "150"},
        )

        response = client.get(f"/api/portfolios/{portfolio.id}/transactions/stats")

        assert response.status_code == 200
        stats = response.json()
        assert stats["transaction_count"] == 2
        assert Decimal(stats["total_buys"]) == Decimal("1000")
        assert Decimal(stats["total_sells"]) == Decimal("600")
        assert Decimal(stats["net_invested"]) == Decimal("400")
        assert Decimal(stats["total_fees"]) == Decimal("1.6")


class TestSingleTransaction:
    def _pending(self, db: Session, portfolio) -> Transaction:
        tx = Transaction(
            portfolio_id=portfolio.id,
            asset_id="AAPL",
            type="buy",
            quantity=Decimal("1"),
            price=Decimal("180"),
            total_amount=Decimal("180"),
            fee=Decimal("0.18"),
            status="pending",
        )
        db.add(tx)
        db.commit()
        return tx

    def test_get_transaction(self, client, db: Session, portfolio, aapl):
        tx = self._pending(db, portfolio)

        response = client.get(f"/api/transactions/{tx.id}")

        assert response.status_code == 200
        assert response.json()["status"] == "pending"

    def test_get_missing(self, client):
        assert client.get("/api/transactions/nonexistent").status_code == 404

    def test_update_pending(self, client, db: Session, portfolio, aapl):
        tx = self._pending(db, portfolio)

        response = client.patch(f"/api/transactions/{tx.id}", json={"quantity": "3"})

        assert response.status_code == 200
        assert Decimal(response.json()["total_amount"]) == Decimal("540")

    def test_update_pending_zero_quantity_rejected(self, client, db: Session, portfolio, aapl):
        tx = self._pending(db, portfolio)

        response = client.patch(f"/api/transactions/{tx.id}", json={"quantity": "0"})

        assert response.status_code == 400
        db.refresh(tx)
        assert tx.quantity == Decimal("1")

    def test_cancel_pending(self, client, db: Session, portfolio, aapl):
        tx = self._pending(db, portfolio)

        response = client.post(f"/api/transactions/{tx.id}/cancel")

        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"

    def test_cancel_completed_conflict(self, client, portfolio, aapl):
        tx_id = _buy(client, portfolio.id).json()["id"]

        response = client.post(f"/api/transactions/{tx_id}/cancel")

        assert response.status_code == 409
