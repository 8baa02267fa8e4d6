"""Day-stepped staffing simulation with mentorship and skill growth."""
