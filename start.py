"""
Launches the simulator API under uvicorn with auto-reload, for local use.
"""
import subprocess
import sys


def main():
    """Runs uvicorn on port 8000 until interrupted."""
    print("Debt Waterfall Simulator on http://localhost:8000")
    print("Documentation: http://localhost:8000/docs")
    print("Health check:  http://localhost:8000/health\n")

    try:
        subprocess.run(
            [sys.executable, "-m", "uvicorn", "waterfall.main:app", "--reload", "--host", "0.0.0.0", "--port", "8000"],
            check=True
        )
    except KeyboardInterrupt:
        print("\n\nServer stopped. Goodbye!")
    except subprocess.CalledProcessError as e:
        print(f"\nError starting server: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
