from datetime import date, timedelta, timezone

import allure
import pytest

from app import app, db
from models import Score, User, utcnow

pytestmark = pytest.mark.unit


@allure.epic("数据模型单元测试")
@allure.feature("创建时间")
class TestCreatedAt:

    @allure.title("utcnow 返回带 UTC 时区的时间")
    def test_utcnow_is_timezone_aware(self):
        now = utcnow()
        assert now.tzinfo is timezone.utc
        assert now.utcoffset() == timedelta(0)

    @allure.title("新记录自动填写创建时间")
    def test_created_at_default(self, test_client):
        with app.app_context():
            user = User(email='model@example.com')
            user.set_password('secret123')
            db.session.add(user)
            db.session.flush()
            score = Score(user_id=user.id, date=date(2024, 1, 1), score=100)
            db.session.add(score)
            db.session.flush()

            assert user.created_at is not None
            assert score.created_at.tzinfo is timezone.utc
            db.session.rollback()
