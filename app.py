from campus_events.app.app import create_app

app = create_app()

if __name__ == "__main__":
    import uvicorn
    print("Starting Campus Events API...")
    print("API will be available at: http://localhost:8000")
    print("API Documentation at: http://localhost:8000/docs")

    uvicorn.run(
        app,
        host="0.0.0.0",
        port=8000,
        log_level="info"
    )
