version = "0.3.1"
