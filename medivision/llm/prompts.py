EXTRACT_MEDICINE_INFO = """
Extract medicine information from this prescription and return ONLY a valid JSON response in the following exact format:

{
  "medicines": [
    {
      "name": "Medicine name",
      "when_to_take": "Morning",
      "frequency": 1
    }
  ]
}

CRITICAL RULES:
1. "when_to_take" must be EXACTLY one of: "Morning", "Evening", or "Both"
2. "frequency" must be a number: 1 (once daily) or 2 (twice daily)
3. If dosage timing is not mentioned or unclear, use "Morning" as default
4. If frequency is not mentioned or unclear, use 1 as default
5. Return ONLY the JSON object, no additional text or explanation

Common prescription patterns to recognize:
- "OD" / "Once daily" / "1 time" = frequency: 1
- "BD" / "BID" / "Twice daily" / "2 times" = frequency: 2
- "Morning" / "AM" / "Before breakfast" = when_to_take: "Morning"
- "Evening" / "PM" / "Before dinner" / "Night" = when_to_take: "Evening"
- "Morning and evening" / "AM & PM" / "Twice" = when_to_take: "Both"

If no medicines are found, return: {"medicines": []}
""".strip()


LOCATE_MEDICINE = """
Analyze this image and find the location of: "{query}".

Look for:
- Exact name match
- Abbreviations (like "Para" for "Paracetamol", "ASP" for "Aspirin")
- Partial names
- Brand names for this generic medicine

If you find it, return its location as normalized coordinates (0-1 range, where 0,0 is top-left and 1,1 is bottom-right).
Return the center point of where the medicine name is visible.

Respond ONLY with valid JSON in this exact format:
{{
  "coordinates": [
    {{"x": 0.5, "y": 0.3}}
  ]
}}

If it is not found, return:
{{
  "coordinates": []
}}

Do not include any other text, explanation, or markdown formatting. Only return the JSON object.
""".strip()
