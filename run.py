"""
Simple script to run the PI Dashboard server.
"""
import uvicorn

if __name__ == "__main__":
    print("Starting PI Dashboard...")
    print("Access at: http://127.0.0.1:8000")
    print("Press Ctrl+C to stop")
    print("-" * 40)

    uvicorn.run(
        "pi_dashboard.main:app",
        host="127.0.0.1",
        port=8000,
        reload=True
    )
