# config.py
import os

class Config:
    # 数据库连接: 生产环境通过 DB_URL 指定，例如
    # mysql+pymysql://用户名:密码@主机/amiram，未设置时使用本地 SQLite
    SQLALCHEMY_DATABASE_URI = os.getenv('DB_URL', 'sqlite:///amiram.sqlite3')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-change-me')
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

    # 单词卡网格每次抽取的数量
    FLASHCARD_SAMPLE_SIZE = int(os.getenv('FLASHCARD_SAMPLE_SIZE', '9'))

    # AI 配置 (兼容 OpenAI 格式的 API)，没有 Key 时翻译建议返回提示文本
    DEEPSEEK_API_KEY = os.getenv("DEEPSEEK_API_KEY", "")
    AI_BASE_URL = os.getenv("AI_BASE_URL", "https://api.deepseek.com")
    AI_MODEL = os.getenv("AI_MODEL", "deepseek-chat")
