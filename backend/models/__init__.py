# Data models shared by the HTTP layer and the interview engine
