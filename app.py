# app.py
import logging
import os
import sys

import chardet  # 引入字符编码检测库
from flask import (Flask, flash, jsonify, redirect, render_template, request,
                   session, url_for)
from flask_login import (LoginManager, current_user, login_required,
                         login_user, logout_user)
from flask_wtf.csrf import CSRFError, CSRFProtect
from sqlalchemy.exc import SQLAlchemyError

from config import Config
from flashcards import FlashcardDeck
from models import Score, User, VocabWord, db
from services import (ValidationError, get_translation, parse_word_lines,
                      validate_credentials, validate_score, validate_word)
from stats import LEVEL_BANDS, compute_score_stats, level_to_dict

# 判断是否在测试环境中
TESTING = 'pytest' in sys.modules or os.getenv('TESTING') == 'true'

DECK_SESSION_KEY = 'flashcard_deck'

logger = logging.getLogger(__name__)

app = Flask(__name__)
app.config.from_object(Config)

if TESTING:
    # 测试环境：使用内存 SQLite
    app.config.update({
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'TESTING': True,
        'WTF_CSRF_ENABLED': False,
        'SQLALCHEMY_ENGINE_OPTIONS': {}
    })
elif not app.config['SQLALCHEMY_DATABASE_URI'].startswith('sqlite'):
    app.config['SQLALCHEMY_ENGINE_OPTIONS'] = {
        "pool_recycle": 300,
        "pool_size": 10,
        "pool_timeout": 10
    }

logging.basicConfig(
    level=app.config['LOG_LEVEL'],
    format='%(asctime)s %(levelname)s %(name)s: %(message)s'
)

db.init_app(app)

login_manager = LoginManager(app)
login_manager.login_view = 'login'

# 表单和 API 的写操作都要带 CSRF token（表单字段 csrf_token 或请求头 X-CSRFToken）
csrf_protect = CSRFProtect(app)


@login_manager.user_loader
def load_user(user_id):
    return db.session.get(User, int(user_id))


@login_manager.unauthorized_handler
def unauthorized():
    if request.path.startswith('/api/'):
        return jsonify({'error': 'נדרשת התחברות'}), 401
    return redirect(url_for('login'))


@app.errorhandler(CSRFError)
def csrf_error(e):
    logger.warning("CSRF check failed on %s: %s", request.path, e.description)
    if request.path.startswith('/api/'):
        return jsonify({'error': 'פג תוקף הדף, יש לרענן ולנסות שוב'}), 400
    flash('פג תוקף הדף, יש לרענן ולנסות שוב', 'error')
    return redirect(request.referrer or url_for('login'))


def store_error(action):
    """数据库操作失败：回滚并返回通用错误信息"""
    db.session.rollback()
    logger.exception("Store failure during %s (user=%s)", action, current_user.get_id())
    messages = {
        'fetch_scores': 'שגיאה בטעינת הציונים',
        'add_score': 'שגיאה בשמירת הציון',
        'delete_score': 'שגיאה במחיקת הציון',
        'fetch_words': 'שגיאה בטעינת המילים',
        'add_word': 'שגיאה בהוספת המילה',
        'delete_word': 'שגיאה במחיקת המילה',
        'upload_words': 'שגיאה בייבוא המילים',
    }
    return jsonify({'error': messages.get(action, 'אירעה שגיאה')}), 500


def user_scores():
    return (Score.query.filter_by(user_id=current_user.id)
            .order_by(Score.date.asc(), Score.id.asc()).all())


def user_words():
    return (VocabWord.query.filter_by(user_id=current_user.id)
            .order_by(VocabWord.created_at.desc(), VocabWord.id.desc()).all())


# --- 单词卡状态：保存在 Flask session 里，每次重新抽卡时整体替换 ---

def load_deck():
    return FlashcardDeck.from_dict(session.get(DECK_SESSION_KEY))


def save_deck(deck):
    session[DECK_SESSION_KEY] = deck.to_dict()


def reshuffle_deck(words):
    deck = FlashcardDeck()
    deck.reshuffle(words, k=app.config['FLASHCARD_SAMPLE_SIZE'])
    save_deck(deck)
    return deck


def resample_after_change():
    """
    单词写入已经提交后重新抽卡。
    重新读取失败时写入仍然算成功，只丢弃旧的卡组，下次请求 /api/cards 时再抽。
    """
    try:
        words = user_words()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Could not reload words after change (user=%s)", current_user.get_id())
        session.pop(DECK_SESSION_KEY, None)
        return None
    return reshuffle_deck(words)


# --- 登录 / 注册 ---

@app.route('/login', methods=['GET', 'POST'])
def login():
    if current_user.is_authenticated:
        return redirect(url_for('index'))
    if request.method == 'POST':
        email = (request.form.get('email') or '').strip().lower()
        password = request.form.get('password') or ''
        user = User.query.filter_by(email=email).first()
        if user and user.check_password(password):
            login_user(user, remember=True)
            logger.info("User %s signed in", user.id)
            return redirect(url_for('index'))
        logger.info("Failed sign-in for %s", email)
        flash('שם המשתמש או הסיסמה שגויים', 'error')
    return render_template('login.html', is_login=True)


@app.route('/register', methods=['GET', 'POST'])
def register():
    if current_user.is_authenticated:
        return redirect(url_for('index'))
    if request.method == 'POST':
        try:
            email, password = validate_credentials(
                request.form.get('email'), request.form.get('password'))
        except ValidationError as e:
            flash(e.message, 'error')
            return render_template('login.html', is_login=False), 400

        if User.query.filter_by(email=email).first():
            flash('כתובת האימייל כבר רשומה', 'error')
            return render_template('login.html', is_login=False), 400

        user = User(email=email)
        user.set_password(password)
        try:
            db.session.add(user)
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception("Could not register %s", email)
            flash('ההרשמה נכשלה, נסה שוב', 'error')
            return render_template('login.html', is_login=False), 500

        logger.info("Registered user %s", user.id)
        flash('ההרשמה בוצעה בהצלחה! ניתן להתחבר', 'success')
        return redirect(url_for('login'))
    return render_template('login.html', is_login=False)


@app.route('/logout', methods=['POST'])
@login_required
def logout():
    logger.info("User %s signed out", current_user.id)
    session.pop(DECK_SESSION_KEY, None)
    logout_user()
    return redirect(url_for('login'))


# --- 页面 ---

@app.route('/')
@login_required
def index():
    try:
        scores = user_scores()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Could not load dashboard for user %s", current_user.id)
        flash('שגיאה בטעינת הציונים', 'error')
        scores = []
    return render_template(
        'dashboard.html',
        scores=[s.to_dict() for s in reversed(scores)],
        stats=compute_score_stats(scores),
        levels=[level_to_dict(b) for b in LEVEL_BANDS]
    )


@app.route('/vocab')
@app.route('/words')
@login_required
def vocab():
    try:
        words = user_words()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Could not load vocab page for user %s", current_user.id)
        flash('שגיאה בטעינת המילים', 'error')
        words = []
    # 每次进入页面都重新抽卡，所有卡片正面朝上
    deck = reshuffle_deck(words)
    return render_template(
        'vocab.html',
        words=[w.to_dict() for w in words],
        cards=deck.cards(words)
    )


# --- API 接口 ---

@app.route('/api/session', methods=['GET'])
@login_required
def get_session():
    return jsonify(current_user.to_dict())


@app.route('/api/levels', methods=['GET'])
@login_required
def get_levels():
    return jsonify([level_to_dict(b) for b in LEVEL_BANDS])


@app.route('/api/scores', methods=['GET'])
@login_required
def get_scores():
    try:
        scores = user_scores()
    except SQLAlchemyError:
        return store_error('fetch_scores')
    return jsonify([s.to_dict() for s in scores])


@app.route('/api/scores', methods=['POST'])
@login_required
def add_score():
    try:
        score_date, value = validate_score(request.get_json(silent=True))
    except ValidationError as e:
        return jsonify({'error': e.message}), 400

    score = Score(user_id=current_user.id, date=score_date, score=value)
    try:
        db.session.add(score)
        # flush 后拿到 id，提交后不再需要重新读取
        db.session.flush()
        data = score.to_dict()
        db.session.commit()
    except SQLAlchemyError:
        return store_error('add_score')

    logger.info("User %s added score %s on %s", current_user.id, value, score_date)
    return jsonify(data), 201


@app.route('/api/scores/<int:score_id>', methods=['DELETE'])
@login_required
def delete_score(score_id):
    try:
        score = Score.query.filter_by(id=score_id, user_id=current_user.id).first()
        if score is None:
            return jsonify({'error': 'הציון לא נמצא'}), 404
        db.session.delete(score)
        db.session.commit()
    except SQLAlchemyError:
        return store_error('delete_score')

    logger.info("User %s deleted score %s", current_user.id, score_id)
    return jsonify({'message': 'Deleted'}), 200


@app.route('/api/scores/stats', methods=['GET'])
@login_required
def get_score_stats():
    try:
        scores = user_scores()
    except SQLAlchemyError:
        return store_error('fetch_scores')
    stats = compute_score_stats(scores)
    if stats is None:
        return jsonify({'empty': True})
    return jsonify(dict(stats, empty=False))


@app.route('/api/words', methods=['GET'])
@login_required
def get_words():
    try:
        words = user_words()
    except SQLAlchemyError:
        return store_error('fetch_words')
    return jsonify([w.to_dict() for w in words])


@app.route('/api/words', methods=['POST'])
@login_required
def add_word():
    try:
        english, hebrew = validate_word(request.get_json(silent=True))
    except ValidationError as e:
        return jsonify({'error': e.message}), 400

    word = VocabWord(user_id=current_user.id, english_word=english, hebrew_word=hebrew)
    try:
        db.session.add(word)
        db.session.flush()
        data = word.to_dict()
        db.session.commit()
    except SQLAlchemyError:
        return store_error('add_word')

    logger.info("User %s added word %s", current_user.id, data['id'])
    resample_after_change()
    return jsonify(data), 201


@app.route('/api/words/<int:word_id>', methods=['DELETE'])
@login_required
def delete_word(word_id):
    try:
        word = VocabWord.query.filter_by(id=word_id, user_id=current_user.id).first()
        if word is None:
            return jsonify({'error': 'המילה לא נמצאה'}), 404
        db.session.delete(word)
        db.session.commit()
    except SQLAlchemyError:
        return store_error('delete_word')

    logger.info("User %s deleted word %s", current_user.id, word_id)
    resample_after_change()
    return jsonify({'message': 'Deleted'}), 200


@app.route('/api/words/upload', methods=['POST'])
@login_required
def upload_words():
    if 'file' not in request.files:
        return jsonify({'error': 'לא נבחר קובץ'}), 400
    file = request.files['file']

    # 1. 读取原始二进制数据
    raw_data = file.read()
    if not raw_data:
        return jsonify({'message': 'יובאו 0 מילים חדשות', 'new_words': [], 'skipped': []}), 200

    # 2. 优先按 utf-8 解码，失败再自动检测编码（希伯来语文件常见 windows-1255）
    try:
        content = raw_data.decode('utf-8-sig')
    except UnicodeDecodeError:
        result = chardet.detect(raw_data)
        encoding = result['encoding']
        if not encoding or result['confidence'] < 0.3:
            return jsonify({'error': 'לא ניתן לזהות את קידוד הקובץ'}), 400
        try:
            content = raw_data.decode(encoding)
        except (UnicodeDecodeError, LookupError):
            return jsonify({'error': 'לא ניתן לזהות את קידוד הקובץ'}), 400

    # 包含零字节通常是二进制文件，直接拦截
    if '\x00' in content:
        return jsonify({'error': 'תוכן הקובץ אינו חוקי'}), 400

    pairs, skipped = parse_word_lines(content)

    try:
        existing = {w.english_word.lower() for w in user_words()}
        new_words = []
        for english, hebrew in pairs:
            if english.lower() in existing:
                continue
            word = VocabWord(user_id=current_user.id, english_word=english, hebrew_word=hebrew)
            db.session.add(word)
            existing.add(english.lower())
            new_words.append(word)
        db.session.flush()
        new_words = [w.to_dict() for w in new_words]
        db.session.commit()
    except SQLAlchemyError:
        return store_error('upload_words')

    logger.info("User %s imported %d words (%d skipped lines)",
                current_user.id, len(new_words), len(skipped))
    if new_words:
        resample_after_change()
    return jsonify({
        'message': f'יובאו {len(new_words)} מילים חדשות',
        'new_words': new_words,
        'skipped': skipped
    })


@app.route('/api/words/suggest', methods=['POST'])
@login_required
def suggest_translation():
    payload = request.get_json(silent=True) or {}
    english = str(payload.get('english_word') or '').strip()
    if not english:
        return jsonify({'error': 'נא להזין מילה באנגלית'}), 400
    return jsonify({'english_word': english, 'hebrew_word': get_translation(english)})


@app.route('/api/cards', methods=['GET'])
@login_required
def get_cards():
    try:
        words = user_words()
    except SQLAlchemyError:
        return store_error('fetch_words')

    if DECK_SESSION_KEY in session:
        deck = load_deck()
    else:
        deck = reshuffle_deck(words)
    return jsonify({'cards': deck.cards(words), 'total': len(words)})


@app.route('/api/cards/shuffle', methods=['POST'])
@login_required
def shuffle_cards():
    try:
        words = user_words()
    except SQLAlchemyError:
        return store_error('fetch_words')
    deck = reshuffle_deck(words)
    return jsonify({'cards': deck.cards(words), 'total': len(words)})


@app.route('/api/cards/<int:word_id>/flip', methods=['POST'])
@login_required
def flip_card(word_id):
    deck = load_deck()
    try:
        revealed = deck.toggle(word_id)
    except KeyError:
        return jsonify({'error': 'הכרטיס אינו מוצג כעת'}), 404
    save_deck(deck)
    return jsonify({'id': word_id, 'revealed': revealed})


if __name__ == '__main__':
    with app.app_context():
        db.create_all()
    app.run(host='0.0.0.0', port=5000, debug=True)
