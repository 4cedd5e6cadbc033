"""
Vercel Serverless Function Entry Point
Exports the AgriTech BFF application for Vercel's Python runtime
"""
from mangum import Mangum
from app.main import app

# Mangum adapter for AWS Lambda / Vercel
handler = Mangum(app, lifespan="auto")
