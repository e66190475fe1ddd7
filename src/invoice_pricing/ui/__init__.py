"""UI subpackage - Streamlit invoice preview."""
