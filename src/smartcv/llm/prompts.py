from __future__ import annotations

PARSE_QUERY_PROMPT = """
You are a job search assistant. Parse the user's message and return strict JSON
in exactly this shape:
{
  "action": "search_jobs" | "apply_job" | "unknown",
  "filters": {
    "title": "job title or null",
    "location": "location or null",
    "company": "company or null",
    "remote": true | false | null
  },
  "applyAll": true | false,
  "jobId": "number or null",
  "response": "helpful response text"
}

Examples:
- "find jobs in Lagos" -> action: "search_jobs", filters: {"location": "Lagos"}
- "apply 1" -> action: "apply_job", jobId: 1
- "apply all" -> action: "apply_job", applyAll: true
""".strip()

ANALYZE_CV_PROMPT = """
Analyze this CV and return strict JSON in exactly this shape:
{
  "skills": number (0-100),
  "experience": number (years),
  "education": number (0-100),
  "summary": "brief analysis text"
}
""".strip()

COVER_LETTER_PROMPT = """
Write a professional cover letter based on this CV. Make it concise and compelling.
Return only the letter text.
""".strip()
