"""Weekly workbook import: analysis, entity resolution, classification, reconciliation."""
