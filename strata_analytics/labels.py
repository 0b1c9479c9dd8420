"""Display labels keyed by stable numeric buckets (UI locale: Japanese)"""

# Index 0 = Sunday, matching EXTRACT(DOW)
DAY_NAMES = ("日", "月", "火", "水", "木", "金", "土")

# Index i = month i + 1
MONTH_NAMES = ("1月", "2月", "3月", "4月", "5月", "6月", "7月", "8月", "9月", "10月", "11月", "12月")

def _by_hour(ranges):
    table = [None] * 24
    for hours, label in ranges:
        for hour in hours:
            table[hour] = label
    return tuple(table)

# Time-of-day label per hour 0-23
HOUR_LABELS = _by_hour((
    (range(0, 5), "深夜"),
    (range(5, 8), "早朝"),
    (range(8, 12), "午前"),
    (range(12, 16), "午後"),
    (range(16, 19), "夕方"),
    (range(19, 24), "夜"),
))

# Listener identity badge per peak hour 0-23
LISTENER_TYPES = _by_hour((
    ((22, 23, 0, 1, 2, 3, 4), "Night Owl \U0001F989"),
    (range(5, 10), "Early Bird \U0001F426"),
    (range(10, 18), "Daytime Listener ☀️"),
    (range(18, 22), "Evening Listener \U0001F319"),
))

SEASONS = ("春", "夏", "秋", "冬")

# Season per month index 0-11 (spring Mar-May, summer Jun-Aug, autumn Sep-Nov, winter Dec-Feb)
MONTH_SEASONS = ("冬", "冬", "春", "春", "春", "夏", "夏", "夏", "秋", "秋", "秋", "冬")

# Named listening windows for the per-period artist ranking
TIME_PERIODS = (
    ("night", "深夜の相棒", (22, 23, 0, 1, 2, 3)),
    ("morning", "夜明けの一枚", (4, 5, 6, 7, 8, 9)),
    ("daytime", "陽だまりの音楽", (10, 11, 12, 13, 14, 15, 16, 17)),
    ("evening", "黄昏のサウンド", (18, 19, 20, 21)),
)
