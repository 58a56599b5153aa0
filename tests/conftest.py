"""
tests/conftest.py
测试配置：内存 SQLite + 已登录的测试客户端
"""
import os
from datetime import date

import pytest

# ========== 关键：在导入app之前设置环境变量 ==========
os.environ['DB_URL'] = 'sqlite:///:memory:'
os.environ['TESTING'] = 'true'

# ========== 导入app ==========
from app import app, db
from models import Score, User, VocabWord

TEST_EMAIL = 'student@example.com'
TEST_PASSWORD = 'secret123'


@pytest.fixture(scope='session', autouse=True)
def setup_test_environment():
    """
    设置测试环境 - 只在会话开始时执行一次
    """
    app.config.update({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    })

    with app.app_context():
        db.create_all()

    yield


def _clear_tables():
    with app.app_context():
        db.session.query(Score).delete()
        db.session.query(VocabWord).delete()
        db.session.query(User).delete()
        db.session.commit()
        db.session.remove()


def create_user(email=TEST_EMAIL, password=TEST_PASSWORD):
    with app.app_context():
        user = User(email=email)
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
        return user.id


@pytest.fixture
def test_client():
    """
    测试客户端fixture - 每个测试函数一个干净的客户端和空数据库
    """
    _clear_tables()
    with app.test_client() as client:
        yield client
    _clear_tables()


@pytest.fixture
def credentials():
    return {'email': TEST_EMAIL, 'password': TEST_PASSWORD}


@pytest.fixture
def make_user(test_client):
    """创建其他用户，返回 user id"""
    return create_user


@pytest.fixture
def user_id(test_client):
    return create_user()


@pytest.fixture
def auth_client(test_client, user_id):
    """已登录的客户端"""
    response = test_client.post('/login', data={'email': TEST_EMAIL, 'password': TEST_PASSWORD})
    assert response.status_code == 302
    return test_client


@pytest.fixture
def sample_scores(user_id):
    """
    预置测试成绩数据（故意乱序插入）
    """
    with app.app_context():
        rows = [
            Score(user_id=user_id, date=date(2024, 3, 1), score=130),
            Score(user_id=user_id, date=date(2024, 1, 1), score=100),
            Score(user_id=user_id, date=date(2024, 2, 1), score=120),
        ]
        db.session.add_all(rows)
        db.session.commit()
        return [r.id for r in rows]


@pytest.fixture
def sample_words(user_id):
    """
    预置测试单词数据
    """
    with app.app_context():
        words_data = [
            ('apple', 'תפוח'),
            ('dog', 'כלב'),
            ('house', 'בית'),
            ('book', 'ספר'),
            ('water', 'מים'),
        ]
        rows = [VocabWord(user_id=user_id, english_word=en, hebrew_word=he)
                for en, he in words_data]
        db.session.add_all(rows)
        db.session.commit()
        return [r.id for r in rows]


# ========== 注册pytest标记 ==========

def pytest_configure(config):
    config.addinivalue_line("markers", "unit: 单元测试")
    config.addinivalue_line("markers", "integration: 标记为集成测试")
    config.addinivalue_line("markers", "e2e: 端到端流程测试")
