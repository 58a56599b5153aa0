# flashcards.py
import random

DEFAULT_SAMPLE_SIZE = 9


def sample_words(words, k=DEFAULT_SAMPLE_SIZE, rng=random):
    """
    Fisher-Yates 洗牌后取前 k 个，得到 min(k, len(words)) 个不重复的单词。
    不修改原列表，每次调用互相独立。
    """
    shuffled = list(words)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled[:k]


def _word_id(word):
    if isinstance(word, dict):
        return word['id']
    return word.id


class FlashcardDeck:
    """当前显示的单词卡，以及每张卡是否已翻面（显示希伯来语）"""

    def __init__(self, card_ids=None, revealed=None):
        self.card_ids = list(card_ids or [])
        # word id -> 是否已翻面，重新抽卡时清空
        self.revealed = dict(revealed or {})

    def reshuffle(self, words, k=DEFAULT_SAMPLE_SIZE, rng=random):
        self.card_ids = [_word_id(w) for w in sample_words(words, k, rng)]
        self.revealed = {}
        return self.card_ids

    def toggle(self, word_id):
        if word_id not in self.card_ids:
            raise KeyError(word_id)
        self.revealed[word_id] = not self.revealed.get(word_id, False)
        return self.revealed[word_id]

    def is_revealed(self, word_id):
        return self.revealed.get(word_id, False)

    def cards(self, words):
        """按抽卡顺序返回单词 dict，并附带翻面状态"""
        by_id = {_word_id(w): w for w in words}
        result = []
        for word_id in self.card_ids:
            word = by_id.get(word_id)
            if word is None:
                continue
            data = word if isinstance(word, dict) else word.to_dict()
            result.append(dict(data, revealed=self.is_revealed(word_id)))
        return result

    def to_dict(self):
        # Flask session 用 JSON 序列化，key 只能是字符串
        return {
            'card_ids': self.card_ids,
            'revealed': {str(k): v for k, v in self.revealed.items()}
        }

    @classmethod
    def from_dict(cls, data):
        if not data:
            return cls()
        revealed = {int(k): v for k, v in data.get('revealed', {}).items()}
        return cls(data.get('card_ids'), revealed)
