"""
AI飲食店エリア分析 - Progress Log
Collects the user-facing progress messages of one analysis run.
"""

from datetime import datetime

LEVELS = ('normal', 'info', 'success', 'error')


class ProgressLog:
    def __init__(self, echo=True):
        self.entries = []
        self.echo = echo

    def add(self, message, level='normal'):
        if level not in LEVELS:
            level = 'normal'
        stamp = datetime.now().strftime('%H:%M:%S')
        self.entries.append({'time': stamp, 'level': level, 'message': message})
        if self.echo:
            print(f"[{stamp}] {message}")

    def messages(self, level=None):
        return [e['message'] for e in self.entries if level is None or e['level'] == level]

    def to_list(self):
        return list(self.entries)
