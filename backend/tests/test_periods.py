import logging
import pytest
from fastapi import status
from datetime import date, datetime
from sqlalchemy.orm import Session

from backend.app.errors import NotFoundError, ValidationError
from backend.app.models.models import BudgetPeriod, Transaction, PeriodKind
from backend.app.schemas.periods import PeriodUpsert
from backend.app.services import period_service
from backend.app.services.period_service import upsert_period, list_periods, get_month_period
from backend.app.services.scoped_repository import UserScopedRepository


def add_transaction(db_session, period, amount, when):
    transaction = Transaction(
        user_id=period.user_id,
        period_id=period.id,
        amount=amount,
        description="Test spend",
        date=when,
    )
    db_session.add(transaction)
    db_session.commit()
    return transaction


# Service layer tests
def test_upsert_monthly_period(db_session: Session, user_id):
    """Test creating a monthly period"""
    period = upsert_period(db_session, user_id, PeriodUpsert(
        income_amount=4000.0,
        target_amount=1000.0,
        month=4,
        year=2025,
    ))

    assert period.id is not None
    assert period.user_id == user_id
    assert period.period_kind == PeriodKind.MONTHLY
    assert period.week_number is None
    assert period.available_amount == 3000.0
    assert period.daily_allowance == 100.0  # April has 30 days


def test_monthly_upsert_updates_existing_row(db_session: Session, user_id, monthly_period):
    """Test that a second monthly upsert for the same month refreshes the first row"""
    updated = upsert_period(db_session, user_id, PeriodUpsert(
        income_amount=6200.0,
        target_amount=0.0,
        month=3,
        year=2025,
    ))

    assert updated.id == monthly_period.id
    assert updated.income_amount == 6200.0
    assert updated.available_amount == 6200.0
    assert updated.daily_allowance == 200.0

    count = db_session.query(BudgetPeriod).filter(
        BudgetPeriod.user_id == user_id,
        BudgetPeriod.month == 3,
        BudgetPeriod.year == 2025,
        BudgetPeriod.week_number.is_(None),
    ).count()
    assert count == 1


def test_repeated_upsert_with_same_inputs_is_idempotent(db_session: Session, user_id, monthly_period):
    again = upsert_period(db_session, user_id, PeriodUpsert(
        income_amount=5000.0,
        target_amount=1900.0,
        month=3,
        year=2025,
    ))

    assert again.id == monthly_period.id
    assert again.available_amount == 3100.0
    assert again.daily_allowance == 100.0


def test_weekly_upsert_is_true_upsert(db_session: Session, user_id, weekly_period):
    """Test that the same week updates the single row"""
    updated = upsert_period(db_session, user_id, PeriodUpsert(
        income_amount=170.0,
        target_amount=100.0,
        period_kind=PeriodKind.WEEKLY,
        month=3,
        year=2025,
        week_number=1,
    ))

    assert updated.id == weekly_period.id
    assert updated.daily_allowance == 10.0
    assert db_session.query(BudgetPeriod).filter(BudgetPeriod.user_id == user_id).count() == 1


def test_monthly_and_weekly_periods_coexist(db_session: Session, user_id, monthly_period, weekly_period):
    """Test that monthly and weekly periods for the same month are distinct rows"""
    second_week = upsert_period(db_session, user_id, PeriodUpsert(
        income_amount=135.0,
        target_amount=100.0,
        period_kind=PeriodKind.WEEKLY,
        month=3,
        year=2025,
        week_number=2,
    ))

    ids = {monthly_period.id, weekly_period.id, second_week.id}
    assert len(ids) == 3
    assert db_session.query(BudgetPeriod).filter(BudgetPeriod.user_id == user_id).count() == 3


def test_same_month_for_different_users(db_session: Session, user_id, other_user_id, monthly_period):
    other = upsert_period(db_session, other_user_id, PeriodUpsert(
        income_amount=5000.0,
        target_amount=1900.0,
        month=3,
        year=2025,
    ))

    assert other.id != monthly_period.id
    assert other.user_id == other_user_id


def test_upsert_rejects_invalid_target(db_session: Session, user_id):
    with pytest.raises(ValidationError):
        upsert_period(db_session, user_id, PeriodUpsert(
            income_amount=1000.0,
            target_amount=1000.0,
            month=3,
            year=2025,
        ))

    assert db_session.query(BudgetPeriod).count() == 0


def test_fallback_upsert_updates_existing_row(db_session: Session, user_id, monkeypatch):
    """Test find-then-write on databases without ON CONFLICT support"""
    monkeypatch.setattr(period_service, "UPSERT_INSERTS", {})

    first = upsert_period(db_session, user_id, PeriodUpsert(
        income_amount=3100.0,
        target_amount=0.0,
        month=5,
        year=2025,
    ))
    second = upsert_period(db_session, user_id, PeriodUpsert(
        income_amount=6200.0,
        target_amount=0.0,
        month=5,
        year=2025,
    ))

    assert second.id == first.id
    assert second.income_amount == 6200.0
    assert second.daily_allowance == 200.0
    assert db_session.query(BudgetPeriod).filter(BudgetPeriod.user_id == user_id).count() == 1


def test_fallback_upsert_retries_lost_insert_as_update(db_session: Session, user_id, monthly_period, monkeypatch, caplog):
    """Test that an insert losing the race to another writer becomes an update"""
    monkeypatch.setattr(period_service, "UPSERT_INSERTS", {})
    original_find_period = UserScopedRepository.find_period
    lookups = []

    def find_period_missing_once(self, month, year, week_slot):
        lookups.append((month, year, week_slot))
        if len(lookups) == 1:
            # Row is already there but the first lookup does not see it
            return None
        return original_find_period(self, month, year, week_slot)

    monkeypatch.setattr(UserScopedRepository, "find_period", find_period_missing_once)
    period_id = monthly_period.id

    with caplog.at_level(logging.WARNING, logger="backend.app.services.period_service"):
        updated = upsert_period(db_session, user_id, PeriodUpsert(
            income_amount=6200.0,
            target_amount=0.0,
            month=3,
            year=2025,
        ))

    assert updated.id == period_id
    assert updated.income_amount == 6200.0
    assert updated.daily_allowance == 200.0
    assert db_session.query(BudgetPeriod).filter(BudgetPeriod.user_id == user_id).count() == 1
    assert "retrying as update" in caplog.text


def test_list_periods_with_summary(db_session: Session, user_id, monthly_period):
    """Test listing periods newest first with spending summaries"""
    older = upsert_period(db_session, user_id, PeriodUpsert(
        income_amount=2800.0,
        target_amount=0.0,
        month=2,
        year=2025,
    ))
    newer = upsert_period(db_session, user_id, PeriodUpsert(
        income_amount=3000.0,
        target_amount=0.0,
        month=1,
        year=2026,
    ))
    add_transaction(db_session, monthly_period, 40.0, datetime(2025, 3, 2, 12))
    add_transaction(db_session, monthly_period, 60.0, datetime(2025, 3, 3, 12))

    periods = list_periods(db_session, user_id)

    assert [p["id"] for p in periods] == [newer.id, monthly_period.id, older.id]
    march = periods[1]
    assert march["summary"]["total_spent"] == 100.0
    assert march["summary"]["remaining_budget"] == 3000.0
    assert march["summary"]["transaction_count"] == 2
    assert periods[0]["summary"] == {"total_spent": 0, "remaining_budget": 3000.0, "transaction_count": 0}


def test_list_periods_excludes_other_users(db_session: Session, other_user_id, monthly_period):
    assert list_periods(db_session, other_user_id) == []


def test_get_month_period_summary(db_session: Session, user_id, monthly_period):
    """Test the month view measured against a given day"""
    first = add_transaction(db_session, monthly_period, 150.0, datetime(2025, 3, 1, 9))
    second = add_transaction(db_session, monthly_period, 250.0, datetime(2025, 3, 4, 18))

    result = get_month_period(db_session, user_id, 2025, 3, today=date(2025, 3, 5))

    assert result["period"]["id"] == monthly_period.id
    assert [t.id for t in result["period"]["transactions"]] == [second.id, first.id]
    summary = result["summary"]
    assert summary["total_spent"] == 400.0
    assert summary["remaining_budget"] == 2700.0
    assert summary["expected_spent"] == 500.0
    assert summary["difference"] == 100.0
    assert summary["days_in_month"] == 31
    assert summary["current_day"] == 5


def test_get_month_period_ignores_weekly_periods(db_session: Session, user_id, weekly_period):
    with pytest.raises(NotFoundError):
        get_month_period(db_session, user_id, 2025, 3)


def test_get_month_period_of_other_user(db_session: Session, other_user_id, monthly_period):
    with pytest.raises(NotFoundError):
        get_month_period(db_session, other_user_id, 2025, 3)


# API layer tests
def test_upsert_period_endpoint(client, auth_headers, user_id):
    """Test POST /periods with camelCase fields"""
    response = client.post(
        "/api/v1/periods/",
        headers=auth_headers,
        json={
            "incomeAmount": 3000.0,
            "targetAmount": 100.0,
            "month": 2,
            "year": 2024,
        }
    )

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["userId"] == user_id
    assert data["periodKind"] == "monthly"
    assert data["weekNumber"] is None
    assert data["availableAmount"] == 2900.0
    assert data["dailyAllowance"] == 100.0  # Leap-year February


def test_upsert_weekly_period_endpoint(client, auth_headers):
    payload = {
        "incomeAmount": 800.0,
        "targetAmount": 100.0,
        "periodKind": "weekly",
        "month": 6,
        "year": 2025,
        "weekNumber": 2,
    }
    first = client.post("/api/v1/periods/", headers=auth_headers, json=payload)
    payload["incomeAmount"] = 1500.0
    second = client.post("/api/v1/periods/", headers=auth_headers, json=payload)

    assert first.status_code == status.HTTP_200_OK
    assert second.status_code == status.HTTP_200_OK
    assert second.json()["id"] == first.json()["id"]
    assert second.json()["dailyAllowance"] == 200.0
    assert second.json()["weekNumber"] == 2


@pytest.mark.parametrize("payload", [
    {"targetAmount": 100.0, "month": 3, "year": 2025},
    {"incomeAmount": 1000.0, "targetAmount": 1000.0, "month": 3, "year": 2025},
    {"incomeAmount": 1000.0, "targetAmount": 100.0, "month": 13, "year": 2025},
    {"incomeAmount": 1000.0, "targetAmount": 100.0, "year": 2025},
    {"incomeAmount": 1000.0, "targetAmount": 100.0, "periodKind": "weekly", "month": 3, "year": 2025},
    {"incomeAmount": 1000.0, "targetAmount": 100.0, "periodKind": "daily", "month": 3, "year": 2025},
    {"incomeAmount": "lots", "targetAmount": 100.0, "month": 3, "year": 2025},
])
def test_upsert_period_endpoint_validation(client, auth_headers, payload):
    response = client.post("/api/v1/periods/", headers=auth_headers, json=payload)

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "error" in response.json()


def test_list_periods_endpoint(client, auth_headers, monthly_period, weekly_period):
    response = client.get("/api/v1/periods/all", headers=auth_headers)

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert len(data) == 2
    assert data[0]["id"] == monthly_period.id
    assert data[1]["id"] == weekly_period.id
    assert data[0]["summary"] == {"totalSpent": 0.0, "remainingBudget": 3100.0, "transactionCount": 0}


def test_get_month_period_endpoint(client, auth_headers, db_session, monthly_period):
    add_transaction(db_session, monthly_period, 75.0, datetime(2025, 3, 10, 12))

    response = client.get("/api/v1/periods/2025/3", headers=auth_headers)

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["period"]["id"] == monthly_period.id
    assert len(data["period"]["transactions"]) == 1
    assert data["summary"]["totalSpent"] == 75.0
    assert data["summary"]["daysInMonth"] == 31
    assert data["summary"]["currentDay"] == date.today().day
    assert data["summary"]["expectedSpent"] == 100.0 * date.today().day


def test_get_month_period_endpoint_not_found(client, auth_headers):
    response = client.get("/api/v1/periods/2031/7", headers=auth_headers)

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json() == {"error": "Period not found for this month"}


@pytest.mark.parametrize("income,target", [
    ("NaN", 100.0),
    ("Infinity", 100.0),
    (1000.0, "NaN"),
    (1000.0, "-Infinity"),
])
def test_upsert_period_endpoint_rejects_non_finite_amounts(client, auth_headers, db_session, income, target):
    response = client.post(
        "/api/v1/periods/",
        headers=auth_headers,
        json={"incomeAmount": income, "targetAmount": target, "month": 3, "year": 2025}
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json() == {"error": "Income amount and target amount must be finite numbers"}
    assert db_session.query(BudgetPeriod).count() == 0
