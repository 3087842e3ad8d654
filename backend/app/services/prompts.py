SUMMARY_QUIZ_TEMPLATE = """You are an educational assistant. Given the transcript context below (from a short educational reel) and the video title "{title}", produce:
1) a concise 2-3 sentence summary (the key takeaways a learner should remember),
2) three short multiple-choice questions. For each question produce 3 options and indicate which option index (0,1,2) is the correct one.

Return a JSON object exactly with:
{{
  "summary": "...",
  "quiz": [
    {{ "question": "...", "options": ["...","...","..."], "answerIndex": 0 }},
    ...
  ]
}}

CONTEXT:
{context}

TRANSCRIPT:
{transcript}
"""

CONTEXT_SEPARATOR = "\n---\n"
