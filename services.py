# services.py
import logging
import re
from datetime import date

# 直接使用底层http客户端调用兼容 OpenAI 格式的接口
import requests

from config import Config

logger = logging.getLogger(__name__)

API_KEY = Config.DEEPSEEK_API_KEY
BASE_URL = Config.AI_BASE_URL
MODEL_NAME = Config.AI_MODEL

MIN_SCORE = 50
MAX_SCORE = 150
MIN_PASSWORD_LENGTH = 6

HEBREW_CHAR_PATTERN = re.compile(r'[\u0590-\u05FF]')
LATIN_CHAR_PATTERN = re.compile(r'[A-Za-z]')
EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')
# 单词文件里英文和希伯来语之间常见的分隔符
SEPARATOR_CHARS = ' \t,;:=-–'


class ValidationError(ValueError):
    """输入校验失败，message 直接展示给用户"""

    def __init__(self, message):
        super().__init__(message)
        self.message = message


def validate_score(payload):
    """校验成绩表单，返回 (date, score)"""
    if not isinstance(payload, dict):
        raise ValidationError('בקשה לא תקינה')

    raw_date = payload.get('date')
    if not raw_date:
        raise ValidationError('יש לבחור תאריך')
    try:
        score_date = date.fromisoformat(str(raw_date))
    except ValueError:
        raise ValidationError('תאריך לא תקין')

    raw_score = payload.get('score')
    # bool 是 int 的子类，需要单独排除
    if isinstance(raw_score, bool):
        raise ValidationError('הציון חייב להיות מספר שלם')
    try:
        score = int(str(raw_score).strip())
    except (TypeError, ValueError):
        raise ValidationError('הציון חייב להיות מספר שלם')

    if score < MIN_SCORE or score > MAX_SCORE:
        raise ValidationError(f'הציון חייב להיות בין {MIN_SCORE} ל-{MAX_SCORE}')
    return score_date, score


def validate_word(payload):
    """校验单词表单，返回去掉首尾空白后的 (english_word, hebrew_word)"""
    if not isinstance(payload, dict):
        raise ValidationError('בקשה לא תקינה')
    english = str(payload.get('english_word') or '').strip()
    hebrew = str(payload.get('hebrew_word') or '').strip()
    if not english or not hebrew:
        raise ValidationError('אנא מלא את שני השדות')
    return english, hebrew


def validate_credentials(email, password):
    email = (email or '').strip().lower()
    if not EMAIL_PATTERN.match(email):
        raise ValidationError('כתובת אימייל לא תקינה')
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f'הסיסמה חייבת להכיל לפחות {MIN_PASSWORD_LENGTH} תווים')
    return email, password


def split_word_line(line):
    """
    把一行 "english hebrew" 拆成 (english, hebrew)。
    在拉丁字母和希伯来字母的交界处拆开，两边的分隔符（tab、逗号、横线等）去掉；
    希伯来语写在前面时自动调换。拆不出两部分返回 None。
    """
    line = line.strip()
    hebrew = HEBREW_CHAR_PATTERN.search(line)
    latin = LATIN_CHAR_PATTERN.search(line)
    if not hebrew or not latin:
        return None

    if latin.start() < hebrew.start():
        english, translated = line[:hebrew.start()], line[hebrew.start():]
    else:
        translated, english = line[:latin.start()], line[latin.start():]
        # 希伯来语在前时，英文部分后面不能再出现希伯来语
        if HEBREW_CHAR_PATTERN.search(english):
            return None

    english = english.strip(SEPARATOR_CHARS)
    translated = translated.strip(SEPARATOR_CHARS)
    if not english or not translated:
        return None
    return english, translated


def parse_word_lines(content):
    """解析单词文件内容，返回 (单词对列表, 无法解析的行列表)"""
    pairs = []
    skipped = []
    for line in content.splitlines():
        if not line.strip():
            continue
        pair = split_word_line(line)
        if pair is None:
            skipped.append(line.strip())
        else:
            pairs.append(pair)
    return pairs, skipped


def get_translation(word):
    """获取英文单词的希伯来语翻译建议"""
    if not word or not word.strip():
        return "נא להזין מילה"
    if not API_KEY:
        return "יש להגדיר מפתח API"

    try:
        response = requests.post(
            f"{BASE_URL}/v1/chat/completions",
            headers={
                "Authorization": f"Bearer {API_KEY}",
                "Content-Type": "application/json"
            },
            json={
                "model": MODEL_NAME,
                "messages": [
                    {"role": "system", "content": "You are an English-Hebrew dictionary. Reply with the most common Hebrew translation of the English word, at most 3 meanings separated by commas. No transliteration, no explanations."},
                    {"role": "user", "content": word.strip()}
                ],
                "temperature": 0.3
            },
            timeout=30
        )

        if response.status_code == 200:
            content = response.json()["choices"][0]["message"]["content"]
            return content.strip() if content else "התרגום ריק"
        logger.warning("AI translation HTTP %s: %s", response.status_code, response.text[:200])
        return f"שירות התרגום אינו זמין כרגע: {response.status_code}"
    except (requests.RequestException, KeyError, IndexError, ValueError) as e:
        logger.warning("AI translation failed for %r: %s", word, e)
        return "שירות התרגום אינו זמין כרגע"
