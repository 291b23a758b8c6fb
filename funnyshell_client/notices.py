"""User-facing status lines.

The shared-terminal server speaks Korean, so the client's notices do too.
Technical detail belongs in the log, never in these strings.
"""

from __future__ import annotations

SYSTEM_SENDER = "시스템"
COMMAND_SENDER = "명령어"

STATUS_CONNECTED = "연결됨"
STATUS_DISCONNECTED = "연결 끊김"

NAME_REQUIRED = "닉네임을 입력해주세요!"
NAME_TOO_LONG = "닉네임은 {limit}자 이하로 입력해주세요!"

WELCOME = "🎉 {name}님, 환영합니다!"
TERMINAL_BANNER = (
    "\n🎮 ROKFOSS FunnyShell - 공유 터미널에 연결되었습니다!\n",
    "💡 명령어를 입력하고 Enter를 눌러 실행하세요.\n",
)
CONNECTION_LOST = "❌ 연결이 끊어졌습니다."
RECONNECTING = "🔄 재연결 시도 중... ({attempt}/{maximum})"
RECONNECT_FAILED = "❌ 재연결에 실패했습니다. 다시 시도해주세요."
NOT_CONNECTED = "❌ 서버에 연결되지 않았습니다."
COMMAND_SEND_FAILED = "❌ 명령어 전송에 실패했습니다."
CHAT_SEND_FAILED = "❌ 채팅 전송에 실패했습니다."
