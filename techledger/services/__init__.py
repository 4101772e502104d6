"""TechLedger service layer — all business rules and every commit live here."""
