"""Day-ahead price based charge planning for FoxESS batteries"""
