import pytest


SAMPLE_LOG = """【ぴよログ】2024年7月
----------

2024/7/1(月)
ぴよ (0か月10日)

00:15   起きる (1時間15分)
00:20   おしっこ
01:00   寝る
04:30   起きる (3時間30分)
04:40   ミルク 100ml
13:00   寝る
15:00   起きる
21:00   寝る

母乳合計　　左 10分 / 右 10分
睡眠合計　　11時間30分

----------
2024/7/2(火)
ぴよ (0か月11日)

05:30   起きる (8時間30分)
12:00   寝る
12:45   起きる
睡眠合計　　10時間0分
"""


@pytest.fixture
def sample_log() -> str:
    return SAMPLE_LOG
