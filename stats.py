# stats.py
"""
成绩统计：最高分、平均分、最近三次平均分，以及按最近平均分划分的等级。
输入为成绩记录列表（dict 或带 date/score 属性的对象），全部是纯函数。
"""
import math
from collections import namedtuple
from datetime import date

LevelBand = namedtuple('LevelBand', ['min', 'max', 'name', 'courses', 'color'])

# 顺序即查找顺序，区间连续且不重叠，覆盖 [0, 150]
LEVEL_BANDS = (
    LevelBand(0, 84, 'טרום בסיסי', 4, 'red'),
    LevelBand(85, 99, 'בסיסי', 3, 'orange'),
    LevelBand(100, 119, 'מתקדמים א׳', 2, 'yellow'),
    LevelBand(120, 133, 'מתקדמים ב׳', 1, 'blue'),
    LevelBand(134, 150, 'פטור', 0, 'green'),
)

RECENT_WINDOW = 3


def round1(value):
    """保留一位小数，.05 向上进位（与前端显示一致）"""
    return math.floor(value * 10 + 0.5) / 10


def find_level(value):
    """返回包含 value 的第一个等级；都不包含时退回最低等级"""
    for i, band in enumerate(LEVEL_BANDS):
        upper = LEVEL_BANDS[i + 1].min if i + 1 < len(LEVEL_BANDS) else None
        # 小数平均分（如 119.5）落在两个整数区间之间时归入下面的区间
        if band.min <= value and (upper is None or value < upper):
            return band
    return LEVEL_BANDS[0]


def level_to_dict(band):
    return {
        'name': band.name,
        'courses': band.courses,
        'color': band.color,
        'min': band.min,
        'max': band.max
    }


def _field(record, name):
    if isinstance(record, dict):
        return record[name]
    return getattr(record, name)


def _as_date(value):
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)


def sort_by_date(records):
    """按日期升序排序（稳定排序），用于画图"""
    return sorted(records, key=lambda r: _as_date(_field(r, 'date')))


def compute_score_stats(records):
    """
    计算成绩统计。
    没有任何成绩时返回 None（"空"状态，调用方需要先判断再渲染）。
    """
    if not records:
        return None

    ordered = sort_by_date(records)
    scores = [_field(r, 'score') for r in ordered]

    recent = scores[-RECENT_WINDOW:]
    recent_average = round1(sum(recent) / len(recent))

    return {
        'count': len(scores),
        'max': max(scores),
        'average': round1(sum(scores) / len(scores)),
        'last': scores[-1],
        'recent_average': recent_average,
        'level': level_to_dict(find_level(recent_average)),
        'chart': [
            {'date': _as_date(_field(r, 'date')).isoformat(), 'score': _field(r, 'score')}
            for r in ordered
        ]
    }
