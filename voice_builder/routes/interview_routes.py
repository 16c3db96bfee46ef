"""HTTP routes: health check and the question catalog."""
from datetime import datetime, timezone

from flask import Blueprint, current_app, jsonify

from voice_builder.prompts.questions import INTERVIEW_QUESTIONS

interview_bp = Blueprint('interview', __name__)


@interview_bp.route('/api/health', methods=['GET'])
def health():
    protocol = current_app.extensions["interview_protocol"]
    return jsonify({
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "sessions": len(protocol.interviews.store),
        "transcription": protocol.aggregator.enabled,
        "speech": protocol.synthesizer is not None,
    }), 200


@interview_bp.route('/api/questions', methods=['GET'])
def questions():
    return jsonify({
        "ok": True,
        "questions": [
            {"id": q.id, "order": q.order, "text": q.text, "voicePrompt": q.voice_prompt}
            for q in INTERVIEW_QUESTIONS
        ],
    }), 200
