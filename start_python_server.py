#!/usr/bin/env python3
import uvicorn
import os

if __name__ == "__main__":
    port = int(os.getenv("PORT", 8000))
    
    uvicorn.run(
        "medreminder.main:app",
        host="0.0.0.0",
        port=port,
        reload=True,
        log_level="info"
    )
