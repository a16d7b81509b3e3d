# conftest.py
import os
import sys

# server/ のモジュールは互いに素の名前で import し合うため、
# プロジェクトルートの server フォルダを sys.path の先頭に追加
ROOT = os.path.dirname(__file__)
SERVER = os.path.join(ROOT, "server")
sys.path.insert(0, SERVER)
